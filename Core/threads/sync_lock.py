# Core/threads/sync_lock.py
from __future__ import annotations

from contextlib import contextmanager

from Feedback.processors.pipeline import logger, StateConflict


class SyncLock:
    """
    Senkronizasyon çakışmasını önleyen süreç içi bayrak.

    - Zamanlanmış (otomatik) senkron başlamadan önce is_locked() sorar,
      kilit tutuluyorsa hiç başlamaz.
    - Manuel senkron held() ile kilidi alır; başarı, hata ya da erken
      dönüşte kilit mutlaka bırakılır.

    Sadece bu process içinde geçerlidir, birden fazla instance arasında
    koordinasyon SAĞLAMAZ.
    """

    def __init__(self):
        self._locked = False

    def is_locked(self) -> bool:
        return self._locked

    def lock(self) -> None:
        self._locked = True
        logger.info("Manuel senkron başladı - zamanlanmış senkronlar atlanacak")

    def unlock(self) -> None:
        self._locked = False
        logger.info("Manuel senkron bitti - zamanlanmış senkronlar devam ediyor")

    @contextmanager
    def held(self):
        """
        Kilidi blok süresince tutar.
        Kilit zaten tutuluyorsa StateConflict fırlatır ve kilide dokunmaz.
        """
        if self._locked:
            raise StateConflict("Devam eden bir senkronizasyon var, lütfen bitmesini bekleyin.")

        self.lock()
        try:
            yield self
        finally:
            self.unlock()


# Uygulama genelinde tek kilit; testler kendi instance'ını enjekte eder
sync_lock = SyncLock()
