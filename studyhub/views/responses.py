"""
Response envelopes shared by every endpoint, serialized with orjson.

- APIResponse: success wrapper around a view
- PaginatedResponse: list endpoints with page metadata
- ErrorResponse: every error, whatever raised it
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

import orjson
from starlette.responses import JSONResponse

from studyhub.errors import StudyHubError


class OrjsonResponse(JSONResponse):
    """JSON response rendered by orjson; dataclass views serialize natively."""
    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, option=orjson.OPT_UTC_Z)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class APIResponse:
    """Standard API response wrapper.

    Usage:
        return APIResponse(data=GroupView.from_group(group), message="Group created")
    """
    success: bool = True
    data: Any = None
    message: Optional[str] = None
    timestamp: str = field(default_factory=_now)


@dataclass(slots=True)
class PaginationMeta:
    page: int = 1
    page_size: int = 20
    total_items: int = 0
    total_pages: int = 0

    @classmethod
    def create(cls, page: int, page_size: int, total_items: int) -> "PaginationMeta":
        total_pages = (total_items + page_size - 1) // page_size if page_size > 0 else 0
        return cls(page=page, page_size=page_size, total_items=total_items, total_pages=total_pages)


@dataclass(slots=True)
class PaginatedResponse:
    data: List[Any] = field(default_factory=list)
    pagination: PaginationMeta = field(default_factory=PaginationMeta)
    success: bool = True
    timestamp: str = field(default_factory=_now)


@dataclass(slots=True)
class ErrorDetail:
    """Field-level validation problem."""
    code: str
    message: str
    field: Optional[str] = None


@dataclass(slots=True)
class ErrorBody:
    code: str
    message: str
    details: Optional[List[ErrorDetail]] = None
    context: Optional[dict] = None
    path: Optional[str] = None
    method: Optional[str] = None


@dataclass(slots=True)
class ErrorResponse:
    """Standard error response wrapper.

    Usage:
        return ErrorResponse(
            error=ErrorBody(code="NOT_FOUND", message="Group not found")
        )
    """
    error: ErrorBody
    success: bool = False
    timestamp: str = field(default_factory=_now)

    @classmethod
    def from_error(
        cls,
        exc: StudyHubError,
        path: Optional[str] = None,
        method: Optional[str] = None,
    ) -> "ErrorResponse":
        return cls(error=ErrorBody(
            code=exc.code,
            message=exc.message,
            context=dict(exc.context) or None,
            path=path,
            method=method,
        ))
