import logging

from settings import LOG_FILE

# -------------------------------------------------
# 📂 Logger Yapılandırması
# -------------------------------------------------
logger = logging.getLogger("orderscout")

if not logger.handlers:  # tekrar tekrar handler eklenmesin
    handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


# -------------------------------------------------
# 🚨 Hata Sınıfları (domain hataları)
# -------------------------------------------------
class PanelError(Exception):
    """
    Panel içindeki tüm bilinen hataların kökü.
    Mesaj doğrudan operatöre gösterilecek kadar açık yazılmalı.
    """

    def __init__(self, message: str = "", data: dict = None):
        super().__init__(message)
        self.message = message
        self.data = data or {}


class NotFound(PanelError):
    """Mağaza / rota / sipariş referansı bulunamadı."""


class ValidationFailure(PanelError):
    """İstek çözülemeyen id'ler ya da bozuk filtre değerleri içeriyor."""


class ExternalApiFailure(PanelError):
    """Uzak (pazaryeri) çağrısı başarısız: ağ hatası ya da 2xx dışı cevap."""

    def __init__(self, message: str = "", status_code: int = None, data: dict = None):
        super().__init__(message, data=data)
        self.status_code = status_code


class StateConflict(PanelError):
    """İşlem, rotanın / siparişin mevcut durumu için geçersiz."""


# -------------------------------------------------
# 📦 Result Sınıfı (işlem sonuç standardı)
# -------------------------------------------------
class Result:
    def __init__(
        self,
        success: bool,
        message: str = "",
        error: Exception = None,
        close_dialog: bool = True,
        data: dict = None,
    ):
        self.success = success
        self.message = message
        self.error = error
        self.close_dialog = close_dialog
        self.data = data or {}  # ✅ ek: yan veriler için düzenli alan

    def __repr__(self):
        state = "ok" if self.success else "fail"
        return f"<Result {state}: {self.message!r}>"

    @classmethod
    def ok(cls, message: str = "", close_dialog: bool = True, data: dict = None):
        res = cls(True, message, close_dialog=close_dialog, data=data)
        logger.info(f"[OK] {message}")
        return res

    @classmethod
    def fail(cls, message: str = "", error: Exception = None, close_dialog: bool = False, data: dict = None):
        res = cls(False, message, error=error, close_dialog=close_dialog, data=data)
        logger.error(f"[FAIL] {message}")
        # domain hataları beklenen durumlardır, traceback basmaya gerek yok
        if error and not isinstance(error, PanelError):
            logger.exception(f"[{type(error).__name__}] {error}", exc_info=error)
        return res


# -------------------------------------------------
# 🔎 Hata Mesajı Haritalama
# -------------------------------------------------
def map_error_to_message(error: Exception) -> str:
    """
    Exception tipine göre kullanıcıya gösterilecek anlamlı mesaj döner.
    Teknik detaylar log dosyasında saklanır.
    """
    import httpx
    from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError, DatabaseError

    # Domain hataları kendi mesajını taşır
    if isinstance(error, PanelError):
        return error.message or type(error).__name__

    # SQL / DB hataları
    if isinstance(error, IntegrityError):
        return "Aynı kayıt zaten mevcut. Lütfen tekrar eklemeyin."
    elif isinstance(error, OperationalError):
        return "Veritabanı ile bağlantı kurulamadı. Lütfen daha sonra tekrar deneyin."
    elif isinstance(error, ProgrammingError):
        return "Sistemsel bir hata oluştu (SQL hatası). Yetkili ile iletişime geçin."
    elif isinstance(error, DatabaseError):
        return "Veritabanı hatası oluştu. Lütfen tekrar deneyin."

    # HTTP hataları
    if isinstance(error, httpx.TimeoutException):
        return "Pazaryeri isteği zaman aşımına uğradı."
    elif isinstance(error, httpx.HTTPStatusError):
        return f"Pazaryeri isteği başarısız oldu (status={error.response.status_code})."
    elif isinstance(error, httpx.HTTPError):
        return "Sunucuya bağlanırken ağ hatası oluştu."

    # Bağlantı hataları
    if isinstance(error, ConnectionError):
        return "Sunucuya bağlanılamadı. İnternet bağlantınızı kontrol edin."
    elif isinstance(error, TimeoutError):
        return "İşlem zaman aşımına uğradı. Daha sonra tekrar deneyin."

    # Veri hataları
    elif isinstance(error, ValueError):
        return "Geçersiz değer girildi. Lütfen bilgilerinizi kontrol edin."
    elif isinstance(error, TypeError):
        return "Beklenmeyen veri tipi. Lütfen giriş bilgilerinizi kontrol edin."
    elif isinstance(error, KeyError):
        return "Beklenen bir alan bulunamadı. Lütfen bilgilerinizi kontrol edin."

    # Bilinmeyen hatalar
    else:
        return "Bilinmeyen bir hata oluştu. Lütfen tekrar deneyin."
