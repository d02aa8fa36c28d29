import base64

from settings import TRENDYOL_INTEGRATION_NAME


class BaseTrendyolApi:
    def __init__(self, api_key_id, api_key_secret, supplier_id, proxy_url=None, transport=None):
        self.api_key_id = api_key_id
        self.api_key_secret = api_key_secret
        self.supplier_id = supplier_id
        self.proxy_url = proxy_url or None
        # testlerde httpx.MockTransport verilebilir
        self.transport = transport

        token = base64.b64encode(f"{api_key_id}:{api_key_secret}".encode("utf-8")).decode("ascii")

        self.header = {
            "Authorization": f"Basic {token}",
            # Trendyol User-Agent'ı 30 karakterle sınırlıyor
            "User-Agent": f"{supplier_id} - {TRENDYOL_INTEGRATION_NAME}"[:30],
            "Content-Type": "application/json",
            "Accept-Encoding": "gzip, deflate, br",
        }
