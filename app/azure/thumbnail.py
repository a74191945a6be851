"""Smart-cropped thumbnails through the Computer Vision `generateThumbnail` operation.
"""
import logging
from typing import Optional
import httpx
from ..core.config import Settings
from ..core.errors import RemoteServiceError, ValidationError
from ..core.models import ThumbnailRequest, ThumbnailResult
from ..core.outcome import Err, Ok, Outcome
from .clients import raise_for_remote_status, vision_http_client

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_MESSAGE = "Failed to generate thumbnail. The response stream is null."


class ThumbnailGenerator:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport

    def validate(self, request: ThumbnailRequest) -> Optional[ValidationError]:
        """Check the request shape; returns the failure or None."""
        if not request.source_url or not request.source_url.strip():
            return ValidationError("Image URL cannot be null or empty.")
        limit = self._settings.thumbnail_max_dimension
        for label, value in (("width", request.width), ("height", request.height)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                return ValidationError(f"Thumbnail {label} must be a positive integer.")
            if value > limit:
                return ValidationError(f"Thumbnail {label} must not exceed {limit} pixels.")
        return None

    async def generate(self, request: ThumbnailRequest) -> Outcome[ThumbnailResult]:
        """Produce the complete thumbnail buffer or fail.

        Validation runs before any remote call. Content-aware cropping is
        always requested. The response is drained fully into memory before
        returning, so callers never see a partial image.
        """
        invalid = self.validate(request)
        if invalid is not None:
            return Err(invalid)

        params = {
            "width": str(request.width),
            "height": str(request.height),
            "smartCropping": "true",
        }
        buffer = bytearray()
        try:
            async with vision_http_client(self._settings, self._transport) as client:
                async with client.stream(
                    "POST", "/generateThumbnail", params=params, json={"url": request.source_url.strip()}
                ) as response:
                    await raise_for_remote_status(response)
                    async for chunk in response.aiter_bytes():
                        buffer.extend(chunk)
        except RemoteServiceError as e:
            logger.warning("generateThumbnail failed: status=%s message=%s", e.status, e.message)
            return Err(e)
        except httpx.HTTPError as e:
            logger.warning("generateThumbnail transport failure: %s", e)
            return Err(RemoteServiceError(str(e) or type(e).__name__, kind="transport_error"))

        if not buffer:
            logger.error("generateThumbnail returned an empty stream for %s", request.source_url)
            return Err(RemoteServiceError(EMPTY_RESPONSE_MESSAGE, kind="empty_response"))
        logger.info("generateThumbnail returned %d bytes (%dx%d)", len(buffer), request.width, request.height)
        return Ok(ThumbnailResult(data=bytes(buffer)))
