"""Request flows: analyze-by-upload, analyze-by-url and thumbnail.

Each flow is a small state machine driven by explicit Ok/Err outcomes. A
failure in any state ends the flow in FAILED with one message and the
input-entry view; a result view is only produced once every stage succeeded.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Protocol
from ..core.errors import ObjectFinderError, TransportError, ValidationError
from ..core.models import ImageInput, PageResponse, TagResult, ThumbnailRequest, ThumbnailResult
from ..core.outcome import Err, Ok, Outcome
from .presenter import present_tags, present_thumbnail
from .resolver import INVALID_UPLOAD_MESSAGE, Upload, resolve_url, stage_upload

logger = logging.getLogger(__name__)

# Views: where a flow lands on success, and the input view it falls back to.
VIEW_ANALYSIS_RESULT = "display_analysis_result"
VIEW_LOCAL_IMAGE = "local_image"
VIEW_IMAGE_URL = "image_url"
VIEW_THUMBNAIL = "display_thumbnail"
VIEW_GENERATE_THUMBNAIL = "generate_thumbnail"

INVALID_DIMENSION_MESSAGE = "Thumbnail {} must be a whole number of pixels."
TRANSPORT_FAILURE_MESSAGE = "Something went wrong while handling the upload. Please try again."


class FlowState(str, Enum):
    START = "start"
    VALIDATING = "validating"
    RESOLVING = "resolving"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    PRESENTING = "presenting"
    DONE = "done"
    FAILED = "failed"


class TagAnalyzer(Protocol):
    async def analyze(self, image: ImageInput) -> Outcome[List[TagResult]]:
        ...


class ThumbnailService(Protocol):
    async def generate(self, request: ThumbnailRequest) -> Outcome[ThumbnailResult]:
        ...


@dataclass
class AnalysisSession:
    """Per-request record of a flow; dropped once the response is built."""
    flow: str
    input_view: str
    result_view: str
    states: List[FlowState] = field(default_factory=lambda: [FlowState.START])
    image: Optional[ImageInput] = None
    tags: Optional[List[TagResult]] = None
    error: Optional[ObjectFinderError] = None
    page: Optional[PageResponse] = None

    @property
    def state(self) -> FlowState:
        return self.states[-1]

    def advance(self, state: FlowState) -> None:
        self.states.append(state)

    def done(self, **content: Any) -> "AnalysisSession":
        self.advance(FlowState.DONE)
        self.page = PageResponse(view=self.result_view, **content)
        return self

    def fail(self, error: ObjectFinderError) -> "AnalysisSession":
        logger.warning(
            "%s failed while %s: %s (%s)", self.flow, self.state.value, error, error.kind
        )
        self.error = error
        self.advance(FlowState.FAILED)
        message = TRANSPORT_FAILURE_MESSAGE if isinstance(error, TransportError) else str(error)
        self.page = PageResponse(view=self.input_view, error=message)
        return self


def _parse_dimension(label: str, raw: Any) -> Outcome[int]:
    if raw is None or isinstance(raw, bool):
        return Err(ValidationError(INVALID_DIMENSION_MESSAGE.format(label)))
    if isinstance(raw, int):
        return Ok(raw)
    try:
        return Ok(int(str(raw).strip()))
    except ValueError:
        return Err(ValidationError(INVALID_DIMENSION_MESSAGE.format(label)))


class Orchestrator:
    """Sequences resolver, vision client, thumbnail generator and presenter.

    Holds no per-request state; one instance serves every request.
    """

    def __init__(
        self,
        vision: TagAnalyzer,
        thumbnails: ThumbnailService,
        tmp_dir: Optional[str] = None,
        chunk_size: int = 65536,
    ):
        self._vision = vision
        self._thumbnails = thumbnails
        self._tmp_dir = tmp_dir
        self._chunk_size = chunk_size

    async def analyze_upload(self, upload: Optional[Upload]) -> AnalysisSession:
        session = AnalysisSession("analyze-upload", VIEW_LOCAL_IMAGE, VIEW_ANALYSIS_RESULT)
        session.advance(FlowState.VALIDATING)
        # UploadFile knows its size up front; other uploads are measured while staging
        if upload is None or getattr(upload, "size", None) == 0:
            return session.fail(ValidationError(INVALID_UPLOAD_MESSAGE))

        session.advance(FlowState.RESOLVING)
        async with stage_upload(upload, tmp_dir=self._tmp_dir, chunk_size=self._chunk_size) as staged:
            if isinstance(staged, Err):
                return session.fail(staged.error)
            session.image = staged.value
            return await self._analyze(session)

    async def analyze_url(self, url: Optional[str]) -> AnalysisSession:
        session = AnalysisSession("analyze-url", VIEW_IMAGE_URL, VIEW_ANALYSIS_RESULT)
        session.advance(FlowState.VALIDATING)
        resolved = resolve_url(url)
        if isinstance(resolved, Err):
            return session.fail(resolved.error)
        session.image = resolved.value
        return await self._analyze(session)

    async def _analyze(self, session: AnalysisSession) -> AnalysisSession:
        session.advance(FlowState.ANALYZING)
        outcome = await self._vision.analyze(session.image)
        if isinstance(outcome, Err):
            return session.fail(outcome.error)
        session.tags = outcome.value
        session.advance(FlowState.PRESENTING)
        return session.done(tags=present_tags(session.tags))

    async def thumbnail(self, image_url: Optional[str], width: Any = 100, height: Any = 100) -> AnalysisSession:
        session = AnalysisSession("thumbnail", VIEW_GENERATE_THUMBNAIL, VIEW_THUMBNAIL)
        session.advance(FlowState.VALIDATING)
        resolved = resolve_url(image_url)
        if isinstance(resolved, Err):
            return session.fail(resolved.error)
        parsed_width = _parse_dimension("width", width)
        if isinstance(parsed_width, Err):
            return session.fail(parsed_width.error)
        parsed_height = _parse_dimension("height", height)
        if isinstance(parsed_height, Err):
            return session.fail(parsed_height.error)

        session.advance(FlowState.GENERATING)
        request = ThumbnailRequest(
            source_url=resolved.value.url, width=parsed_width.value, height=parsed_height.value
        )
        outcome = await self._thumbnails.generate(request)
        if isinstance(outcome, Err):
            return session.fail(outcome.error)

        session.advance(FlowState.PRESENTING)
        return session.done(thumbnail=present_thumbnail(outcome.value))
