import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from .azure.thumbnail import ThumbnailGenerator
from .azure.vision import VisionClient
from .core.config import Settings, settings
from .core.models import HealthResponse
from .routers.analysis import router as analysis_router
from .services.orchestrator import Orchestrator

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_orchestrator(config: Settings) -> Orchestrator:
    """Wire the remote clients from one settings object."""
    return Orchestrator(
        vision=VisionClient(config),
        thumbnails=ThumbnailGenerator(config),
        tmp_dir=config.upload_tmp_dir,
        chunk_size=config.upload_chunk_size,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.vision_subscription_key:
        logger.warning("VISION_SUBSCRIPTION_KEY is not set; remote calls will be rejected")
    app.state.orchestrator = build_orchestrator(settings)
    logger.info("Vision endpoint: %s", settings.vision_base_url)
    yield


tags_metadata = [
    {
        "name": "analysis",
        "description": (
            "Endpoints to tag images and generate thumbnails through a remote vision service.\n\n"
            "- Tag an uploaded file or a URL.\n"
            "- Smart-cropped thumbnails returned as a data URI.\n"
            "- Failures return the input view with a single error message."
        ),
    }
]

app = FastAPI(
    title="Object Finder",
    description=(
        "How to Use:\n\n"
        "1) Tag an uploaded image: POST /analyze/upload with a multipart `imageFile`.\n"
        "2) Tag an image by URL: POST /analyze/url with form field `imageUrl`.\n"
        "3) Thumbnail: GET /thumbnail?imageUrl=...&width=100&height=100.\n\n"
        "Notes: analysis and cropping run on the remote service; this API only "
        "stages inputs and shapes the results."
    ),
    openapi_tags=tags_metadata,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.include_router(analysis_router)


@app.get("/healthz", response_model=HealthResponse)
async def healthz():
    return HealthResponse(status="ok")
