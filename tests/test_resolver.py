import os, sys
from io import BytesIO

import pytest
from starlette.datastructures import UploadFile
from starlette.requests import ClientDisconnect

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app.core.errors import TransportError, ValidationError
from app.core.models import RemoteImage, UploadedImage
from app.core.outcome import Err, Ok
from app.services.resolver import resolve_url, stage_upload


def _upload(data: bytes, filename="img.png") -> UploadFile:
    return UploadFile(file=BytesIO(data), filename=filename)


@pytest.mark.parametrize("url", [None, "", "   ", "\t\n"])
def test_resolve_url_blank_failure(url):
    outcome = resolve_url(url)
    assert isinstance(outcome, Err)
    assert isinstance(outcome.error, ValidationError)


@pytest.mark.parametrize("url", ["not a url", "ftp://example.com/a.png", "example.com/a.png"])
def test_resolve_url_malformed_failure(url):
    outcome = resolve_url(url)
    assert isinstance(outcome, Err)
    assert outcome.error.message == "Please provide a valid image URL."


def test_resolve_url_strips_and_keeps_given_url_success():
    outcome = resolve_url("  https://example.com/cat.jpg  ")
    assert outcome == Ok(RemoteImage(url="https://example.com/cat.jpg"))


@pytest.mark.asyncio
async def test_stage_upload_copies_bytes_and_cleans_up_success(tmp_path):
    data = bytes(range(256)) * 10

    async with stage_upload(_upload(data), tmp_dir=str(tmp_path), chunk_size=100) as staged:
        assert isinstance(staged, Ok)
        assert isinstance(staged.value, UploadedImage)
        assert staged.value.size == len(data)
        with open(staged.value.path, "rb") as fh:
            assert fh.read() == data
        staged_path = staged.value.path

    assert not os.path.exists(staged_path)
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_stage_upload_cleans_up_when_block_raises_failure(tmp_path):
    with pytest.raises(RuntimeError):
        async with stage_upload(_upload(b"abc"), tmp_dir=str(tmp_path)) as staged:
            assert isinstance(staged, Ok)
            raise RuntimeError("analysis blew up")

    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_stage_upload_empty_file_failure(tmp_path):
    async with stage_upload(_upload(b""), tmp_dir=str(tmp_path)) as staged:
        assert isinstance(staged, Err)
        assert isinstance(staged.error, ValidationError)

    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_stage_upload_missing_upload_failure(tmp_path):
    async with stage_upload(None, tmp_dir=str(tmp_path)) as staged:
        assert isinstance(staged, Err)
        assert isinstance(staged.error, ValidationError)


@pytest.mark.asyncio
async def test_stage_upload_unwritable_dir_failure(tmp_path):
    missing_dir = tmp_path / "does-not-exist"

    async with stage_upload(_upload(b"abc"), tmp_dir=str(missing_dir)) as staged:
        assert isinstance(staged, Err)
        assert isinstance(staged.error, TransportError)


class DisconnectingUpload:
    """Yields one chunk, then behaves like a client that went away."""

    def __init__(self):
        self.reads = 0

    async def read(self, size=-1):
        self.reads += 1
        if self.reads == 1:
            return b"partial"
        raise ClientDisconnect()


@pytest.mark.asyncio
async def test_stage_upload_client_disconnect_failure(tmp_path):
    async with stage_upload(DisconnectingUpload(), tmp_dir=str(tmp_path)) as staged:
        assert isinstance(staged, Err)
        assert isinstance(staged.error, TransportError)

    assert list(tmp_path.iterdir()) == []
