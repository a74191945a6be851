"""Remote tag analysis through the Computer Vision `analyze` operation.
"""
import logging
from typing import Any, AsyncIterator, BinaryIO, Dict, List, Optional
import httpx
from pydantic import ValidationError as ModelValidationError
from starlette.concurrency import run_in_threadpool
from ..core.config import Settings
from ..core.errors import RemoteServiceError, TransportError
from ..core.models import ImageInput, RemoteImage, TagResult, UploadedImage
from ..core.outcome import Err, Ok, Outcome
from .clients import raise_for_remote_status, vision_http_client

logger = logging.getLogger(__name__)

# Only tags are requested; no objects, OCR or captions.
VISUAL_FEATURES = "Tags"


async def _iter_chunks(stream: BinaryIO, chunk_size: int) -> AsyncIterator[bytes]:
    """Read the stream in fixed-size pieces off the event loop."""
    while True:
        chunk = await run_in_threadpool(stream.read, chunk_size)
        if not chunk:
            break
        yield chunk


def _parse_tags(body: Dict[str, Any]) -> List[TagResult]:
    """Keep the remote order and the raw confidence values."""
    return [TagResult(name=t["name"], confidence=t["confidence"]) for t in body.get("tags", [])]


class VisionClient:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport

    async def analyze(self, image: ImageInput) -> Outcome[List[TagResult]]:
        """Request tags for either a staged upload or a remote URL."""
        match image:
            case RemoteImage(url=url):
                return await self._post_analyze({"json": {"url": url}})
            case UploadedImage(path=path, size=size):
                try:
                    fh = await run_in_threadpool(open, path, "rb")
                    try:
                        return await self.analyze_stream(fh, size=size)
                    finally:
                        await run_in_threadpool(fh.close)
                except OSError as e:
                    logger.error("could not read staged upload %s: %s", path, e)
                    return Err(TransportError("Could not read the uploaded file."))
            case _:
                raise TypeError(f"unsupported image input: {image!r}")

    async def analyze_url(self, url: str) -> Outcome[List[TagResult]]:
        return await self.analyze(RemoteImage(url=url))

    async def analyze_stream(self, stream: BinaryIO, size: Optional[int] = None) -> Outcome[List[TagResult]]:
        """Send the stream as the request body, chunk by chunk.

        With a known `size` the body goes out with Content-Length, otherwise
        chunked.
        """
        headers = {"Content-Type": "application/octet-stream"}
        if size is not None:
            headers["Content-Length"] = str(size)
        return await self._post_analyze(
            {"content": _iter_chunks(stream, self._settings.upload_chunk_size), "headers": headers}
        )

    async def _post_analyze(self, request_kwargs: Dict[str, Any]) -> Outcome[List[TagResult]]:
        try:
            async with vision_http_client(self._settings, self._transport) as client:
                response = await client.post(
                    "/analyze", params={"visualFeatures": VISUAL_FEATURES}, **request_kwargs
                )
                await raise_for_remote_status(response)
                body = response.json()
        except RemoteServiceError as e:
            logger.warning("analyze failed: status=%s message=%s", e.status, e.message)
            return Err(e)
        except httpx.HTTPError as e:
            logger.warning("analyze transport failure: %s", e)
            return Err(RemoteServiceError(str(e) or type(e).__name__, kind="transport_error"))
        except ValueError as e:
            logger.warning("analyze returned a non-JSON body: %s", e)
            return Err(RemoteServiceError("vision service returned an unreadable response", kind="malformed_response"))

        try:
            tags = _parse_tags(body)
        except (KeyError, TypeError, AttributeError, ModelValidationError) as e:
            logger.warning("analyze returned malformed tags: %s", e)
            return Err(RemoteServiceError("vision service returned malformed tags", kind="malformed_response"))
        logger.info("analyze returned %d tags", len(tags))
        return Ok(tags)
