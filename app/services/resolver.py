"""Normalizes the two ways an image can arrive (upload, URL) into an ImageInput.
"""
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Protocol
from pydantic import HttpUrl, TypeAdapter, ValidationError as ModelValidationError
from starlette.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect
from ..core.errors import TransportError, ValidationError
from ..core.models import RemoteImage, UploadedImage
from ..core.outcome import Err, Ok, Outcome

logger = logging.getLogger(__name__)

INVALID_UPLOAD_MESSAGE = "Please upload a valid image file."
INVALID_URL_MESSAGE = "Please provide a valid image URL."
STAGING_FAILED_MESSAGE = "Could not store the uploaded file. Please try again."
UPLOAD_INTERRUPTED_MESSAGE = "The upload was interrupted before it completed."

_http_url = TypeAdapter(HttpUrl)


class Upload(Protocol):
    """Anything with an async chunked `read`, e.g. FastAPI's UploadFile."""

    async def read(self, size: int = -1) -> bytes:
        ...


def resolve_url(url: Optional[str]) -> Outcome[RemoteImage]:
    """Accept a non-blank, syntactically valid http(s) URL.

    Reachability is not checked here; fetch failures come back later from
    the remote service.
    """
    if url is None or not url.strip():
        return Err(ValidationError(INVALID_URL_MESSAGE))
    candidate = url.strip()
    try:
        _http_url.validate_python(candidate)
    except ModelValidationError:
        return Err(ValidationError(INVALID_URL_MESSAGE))
    return Ok(RemoteImage(url=candidate))


@asynccontextmanager
async def stage_upload(
    upload: Optional[Upload],
    tmp_dir: Optional[str] = None,
    chunk_size: int = 65536,
) -> AsyncIterator[Outcome[UploadedImage]]:
    """Copy an upload to a temporary file that lives only inside this block.

    Yields Ok(UploadedImage) or Err(ValidationError/TransportError). File
    writes run in the threadpool. The file is removed on every exit path,
    including errors raised by the caller.
    """
    if upload is None:
        yield Err(ValidationError(INVALID_UPLOAD_MESSAGE))
        return

    path: Optional[str] = None
    try:
        try:
            fd, path = await run_in_threadpool(tempfile.mkstemp, prefix="upload-", dir=tmp_dir)
            out = await run_in_threadpool(os.fdopen, fd, "wb")
            size = 0
            try:
                while True:
                    chunk = await upload.read(chunk_size)
                    if not chunk:
                        break
                    await run_in_threadpool(out.write, chunk)
                    size += len(chunk)
            finally:
                await run_in_threadpool(out.close)
        except OSError as e:
            logger.error("staging upload failed: %s", e)
            staged: Outcome[UploadedImage] = Err(TransportError(STAGING_FAILED_MESSAGE))
        except ClientDisconnect:
            logger.warning("client disconnected while staging upload")
            staged = Err(TransportError(UPLOAD_INTERRUPTED_MESSAGE))
        else:
            if size == 0:
                staged = Err(ValidationError(INVALID_UPLOAD_MESSAGE))
            else:
                logger.debug("staged upload to %s (%d bytes)", path, size)
                staged = Ok(UploadedImage(path=path, size=size))
        yield staged
    finally:
        if path is not None:
            try:
                await run_in_threadpool(os.unlink, path)
            except FileNotFoundError:
                pass
