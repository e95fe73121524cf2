# app/utils/response.py

import math
from datetime import datetime, timezone
from typing import TypeVar, Generic, Optional, Dict, Any
from pydantic import BaseModel, Field

T = TypeVar("T")


class PageMetadata(BaseModel):
    page: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool


def page_metadata(page: int, size: int, total: int) -> PageMetadata:
    total_pages = math.ceil(total / size) if size else 0
    return PageMetadata(
        page=page,
        size=size,
        total_elements=total,
        total_pages=total_pages,
        first=page <= 1,
        last=page >= total_pages,
    )


def success_response(
    message: str,
    data: Optional[T] = None,
    metadata: Optional[PageMetadata] = None,
) -> Dict[str, Any]:
    body = {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": datetime.now(timezone.utc),
    }
    if metadata is not None:
        body["metadata"] = metadata
    return body


class APIResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[PageMetadata] = None
