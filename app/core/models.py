import base64
from dataclasses import dataclass
from typing import Optional, List, Union
from pydantic import BaseModel, Field

class TagResult(BaseModel):
    name: str
    confidence: float = Field(ge=0.0, le=1.0)

class TagView(BaseModel):
    name: str
    confidence: float
    label: str

class PageResponse(BaseModel):
    """What a flow hands back: the view to show and its content.

    A failed flow only ever carries `error`; `tags` and `thumbnail` stay empty.
    """
    view: str
    error: Optional[str] = None
    tags: Optional[List[TagView]] = None
    thumbnail: Optional[str] = None

class HealthResponse(BaseModel):
    status: str


@dataclass(frozen=True)
class UploadedImage:
    """An upload staged to a request-scoped temporary file."""
    path: str
    size: int


@dataclass(frozen=True)
class RemoteImage:
    url: str


ImageInput = Union[UploadedImage, RemoteImage]


@dataclass(frozen=True)
class ThumbnailRequest:
    source_url: str
    width: int
    height: int
    smart_cropping: bool = True


@dataclass(frozen=True)
class ThumbnailResult:
    data: bytes

    @property
    def encoded(self) -> str:
        return base64.b64encode(self.data).decode("ascii")
