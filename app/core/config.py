import os
from pydantic import BaseModel
from typing import Optional

class Settings(BaseModel):
    """for reading environment-driven configuration.

    Credentials and endpoint are read once at startup and handed to the
    vision and thumbnail clients; nothing mutates them afterwards.
    """
    vision_subscription_key: str = os.getenv("VISION_SUBSCRIPTION_KEY", "")
    vision_endpoint: str = os.getenv("VISION_ENDPOINT", "https://westus.api.cognitive.microsoft.com")
    vision_api_version: str = os.getenv("VISION_API_VERSION", "v3.2")
    request_timeout: float = float(os.getenv("VISION_TIMEOUT", "30"))
    thumbnail_default_width: int = int(os.getenv("THUMBNAIL_DEFAULT_WIDTH", "100"))
    thumbnail_default_height: int = int(os.getenv("THUMBNAIL_DEFAULT_HEIGHT", "100"))
    thumbnail_max_dimension: int = int(os.getenv("THUMBNAIL_MAX_DIMENSION", "1024"))
    upload_tmp_dir: Optional[str] = os.getenv("UPLOAD_TMP_DIR")
    upload_chunk_size: int = int(os.getenv("UPLOAD_CHUNK_SIZE", "65536"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def vision_base_url(self) -> str:
        return f"{self.vision_endpoint.rstrip('/')}/vision/{self.vision_api_version}"

settings = Settings()
