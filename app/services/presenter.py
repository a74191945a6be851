from typing import Iterable, List
from ..core.models import TagResult, TagView, ThumbnailResult

THUMBNAIL_MEDIA_TYPE = "image/jpeg"


def present_tags(tags: Iterable[TagResult]) -> List[TagView]:
    """Same order, same values; adds a display label only."""
    return [
        TagView(name=t.name, confidence=t.confidence, label=f"{t.name} ({t.confidence:.2%})")
        for t in tags
    ]


def present_thumbnail(result: ThumbnailResult) -> str:
    return f"data:{THUMBNAIL_MEDIA_TYPE};base64,{result.encoded}"
