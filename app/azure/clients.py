from typing import Any, Dict, Optional
import httpx
from ..core.config import Settings
from ..core.errors import RemoteServiceError

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"


def vision_http_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create an HTTP client bound to the configured vision endpoint/key.

    A fresh client per call keeps the handle request-scoped; `transport`
    lets tests swap in `httpx.MockTransport`.
    """
    return httpx.AsyncClient(
        base_url=settings.vision_base_url,
        headers={SUBSCRIPTION_KEY_HEADER: settings.vision_subscription_key},
        timeout=settings.request_timeout,
        transport=transport,
    )


def _error_message(response: httpx.Response) -> str:
    # Azure wraps failures as {"error": {"code": ..., "message": ...}}
    try:
        body: Dict[str, Any] = response.json()
    except ValueError:
        return response.reason_phrase or "remote service error"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return response.reason_phrase or "remote service error"


async def raise_for_remote_status(response: httpx.Response) -> None:
    """Turn a non-2xx answer into RemoteServiceError with status/message."""
    if response.is_success:
        return
    await response.aread()
    raise RemoteServiceError(_error_message(response), status=response.status_code)
