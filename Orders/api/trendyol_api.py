from Core.api.Api_engine import BaseTrendyolApi
from Core.utils.request_utils import async_make_request
from Feedback.processors.pipeline import Result, ExternalApiFailure, map_error_to_message
from Orders.constants.trendyol_constants import ORDER_BY_FIELD, ORDER_BY_DIRECTION
from settings import TRENDYOL_API_URL, ORDER_PAGE_SIZE


class TrendyolApi(BaseTrendyolApi):
    """
    Trendyol sipariş API istemcisi.

    Bu sınıf yalnızca **tek sayfalık** sipariş verisini çeker.
    Sayfalama pipeline tarafında yapılır.
    """

    @property
    def orders_url(self) -> str:
        return f"{TRENDYOL_API_URL}/{self.supplier_id}/orders"

    async def _get_orders_page(self, params: dict) -> Result:
        res = await async_make_request(
            method="GET",
            url=self.orders_url,
            headers=self.header,
            params=params,
            proxy=self.proxy_url,
            transport=self.transport,
        )

        if not res.success:
            return res

        data = res.data.get("json") or {}
        status_code = res.data.get("status_code", 0)

        if status_code != 200 or not isinstance(data, dict):
            failure = ExternalApiFailure(
                f"API isteği başarısız oldu (status={status_code})",
                status_code=status_code,
            )
            return Result.fail(failure.message, error=failure, close_dialog=False,
                               data={"status_code": status_code})

        return Result.ok(
            f"Sayfa {data.get('page', 0)} alındı ({len(data.get('content') or [])} paket).",
            close_dialog=False,
            data={
                "content": data.get("content") or [],
                "totalPages": int(data.get("totalPages") or 0),
                "page": int(data.get("page") or 0),
                "totalElements": int(data.get("totalElements") or 0),
                "status_code": status_code,
            }
        )

    async def find_orders(
        self,
        status: str = None,
        page: int = 0,
        size: int = ORDER_PAGE_SIZE,
        start_date: int = None,
        end_date: int = None,
    ) -> Result:
        try:
            params = {
                "page": page,
                "size": size,
                "orderByField": ORDER_BY_FIELD,
                "orderByDirection": ORDER_BY_DIRECTION,
            }
            if status:
                params["status"] = status
            if start_date:
                params["startDate"] = start_date
            if end_date:
                params["endDate"] = end_date

            return await self._get_orders_page(params)

        except Exception as e:
            return Result.fail(
                map_error_to_message(e),
                error=e,
                close_dialog=False
            )

    # 🔽 Tek paket çekme
    async def get_order_by_package_id(self, shipment_package_id: int) -> Result:
        """
        Tek bir shipmentPackageId için paketi getirir.
        Bulunamazsa success=True ve data["order"]=None döner.
        """
        try:
            res = await self._get_orders_page({
                "shipmentPackageIds": shipment_package_id,
                "page": 0,
                "size": 1,
            })
            if not res.success:
                return res

            content = res.data.get("content", [])
            order = content[0] if content else None
            msg = "Paket başarıyla alındı." if order else "Bu paket için sipariş bulunamadı."

            return Result.ok(msg, close_dialog=False, data={"order": order})

        except Exception as e:
            return Result.fail(
                map_error_to_message(e),
                error=e,
                close_dialog=False
            )
