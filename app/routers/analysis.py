from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile
from typing import Optional
from ..core.config import settings
from ..core.errors import RemoteServiceError, TransportError, ValidationError
from ..core.models import PageResponse
from ..services.orchestrator import AnalysisSession, Orchestrator

router = APIRouter(tags=["analysis"])

# Failure kind -> HTTP status; the body always carries the single message.
STATUS_BY_ERROR = {
    ValidationError: 400,
    RemoteServiceError: 502,
    TransportError: 500,
}


def get_orchestrator(request: Request) -> Orchestrator:
    """The orchestrator built once at startup (see app.main lifespan)."""
    return request.app.state.orchestrator


def _page(session: AnalysisSession, response: Response) -> PageResponse:
    if session.error is not None:
        response.status_code = STATUS_BY_ERROR.get(type(session.error), 500)
    return session.page


@router.post(
    "/analyze/upload",
    response_model=PageResponse,
    summary="Tag an uploaded image",
    description=(
        "Upload an image with multipart form-data (`imageFile`).\n\n"
        "The file is staged to a temporary location, sent to the remote vision "
        "service for tag analysis and removed again. Only non-empty length is checked."
    ),
)
async def analyze_upload(
    response: Response,
    imageFile: Optional[UploadFile] = File(None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    session = await orchestrator.analyze_upload(imageFile)
    return _page(session, response)


@router.post(
    "/analyze/url",
    response_model=PageResponse,
    summary="Tag an image by URL",
    description="Form field `imageUrl`: a public http(s) URL the vision service can fetch.",
)
async def analyze_url(
    response: Response,
    imageUrl: Optional[str] = Form(None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    session = await orchestrator.analyze_url(imageUrl)
    return _page(session, response)


@router.get(
    "/thumbnail",
    response_model=PageResponse,
    summary="Generate a smart-cropped thumbnail",
    description=(
        "Query params:\n"
        "- `imageUrl` (required): source image URL.\n"
        "- `width`/`height`: target size in pixels, default 100.\n\n"
        "Returns the thumbnail as a `data:image/jpeg;base64,...` string."
    ),
)
async def thumbnail(
    response: Response,
    imageUrl: Optional[str] = Query(None),
    width: Optional[str] = Query(None, description="Target width in pixels"),
    height: Optional[str] = Query(None, description="Target height in pixels"),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    session = await orchestrator.thumbnail(
        imageUrl,
        width if width is not None else settings.thumbnail_default_width,
        height if height is not None else settings.thumbnail_default_height,
    )
    return _page(session, response)
