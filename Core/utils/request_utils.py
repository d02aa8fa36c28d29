import httpx

from Feedback.processors.pipeline import Result, ExternalApiFailure, map_error_to_message
from settings import REQUEST_TIMEOUT


async def async_make_request(
    method: str,
    url: str,
    headers=None,
    auth=None,
    params=None,
    data=None,
    json=None,
    timeout=REQUEST_TIMEOUT,
    proxy=None,
    transport=None,
) -> Result:
    """
    Genel amaçlı asenkron HTTP istek fonksiyonu.
    - Başarılı olursa Result.ok döner → data = {"json": ..., "status_code": ...}
    - Hata olursa Result.fail döner, error her zaman ExternalApiFailure'dır.
    """
    try:
        client_kwargs = {"timeout": timeout, "follow_redirects": False}
        if proxy:
            client_kwargs["proxy"] = proxy
        if transport is not None:
            client_kwargs["transport"] = transport

        async with httpx.AsyncClient(**client_kwargs) as client:
            response = await client.request(
                method=method,
                url=url,
                headers=headers,
                auth=auth,
                params=params,
                data=data,
                json=json
            )
            response.raise_for_status()

            # ✅ Başarıyla sonuç döner
            return Result.ok(
                f"{method} {url} isteği başarılı.",
                close_dialog=False,
                data={
                    "json": response.json(),
                    "status_code": response.status_code
                }
            )

    except Exception as e:
        # ✅ Hata feedback sistemine uyarlanır
        msg = map_error_to_message(e)
        status_code = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
        failure = ExternalApiFailure(f"{method} {url} isteği başarısız: {msg}", status_code=status_code)
        failure.__cause__ = e
        return Result.fail(
            failure.message,
            error=failure,
            close_dialog=False,
            data={"status_code": status_code},
        )
