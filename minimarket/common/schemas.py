"""
Pydantic models shared by every router: the JSend envelope, pagination and timestamps.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, TypeVar, Generic, List, Any, Dict

from pydantic import BaseModel, field_validator

ADMIN_ROLE = "admin"
CASHIER_ROLE = "cashier"


class TimestampMixin(BaseModel):
    """createdAt / updatedAt as stored on Firestore documents."""
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @field_validator('createdAt', 'updatedAt', mode='before')
    @classmethod
    def parse_datetime(cls, value):
        # Firestore hands back DatetimeWithNanoseconds; cached copies come back as ISO strings
        if value is None or isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                pass
        return value


class JSendStatus(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"
    ERROR = "error"


T = TypeVar('T')


class PaginationResponse(BaseModel, Generic[T]):
    """One page of a list endpoint."""
    items: List[T]
    total: int
    page: int
    size: int
    pages: int

    @classmethod
    def paginate(cls, items: List[Any], page: int, size: int) -> 'PaginationResponse':
        """Slice an already filtered list into one page."""
        total = len(items)
        offset = (page - 1) * size
        pages = (total + size - 1) // size if total > 0 else 1
        return cls(items=items[offset:offset + size], total=total, page=page, size=size, pages=pages)


class MessageData(BaseModel):
    """Plain confirmation payload for delete-style operations."""
    message: str


class JSendResponse(BaseModel, Generic[T]):
    """
    Envelope returned by every endpoint, following https://github.com/omniti-labs/jsend.

    Business errors travel as status "error" with the HTTP code copied into `code`,
    while the response itself is sent with status 200.
    """
    status: JSendStatus
    data: Optional[T] = None
    message: Optional[str] = None
    code: Optional[int] = None

    @classmethod
    def success(cls, data: Any = None) -> 'JSendResponse':
        return cls(status=JSendStatus.SUCCESS, data=data)

    @classmethod
    def fail(cls, data: Dict[str, Any]) -> 'JSendResponse':
        """Input was understood but rejected; `data` says why."""
        return cls(status=JSendStatus.FAIL, data=data)

    @classmethod
    def error(cls, message: str, code: Optional[int] = None, data: Any = None) -> 'JSendResponse':
        return cls(status=JSendStatus.ERROR, message=message, code=code, data=data)
