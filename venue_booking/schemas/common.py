"""
Response envelope shared by every endpoint, plus shared field types.
"""

import math
from datetime import datetime, timezone
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import AfterValidator, BaseModel

T = TypeVar("T")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UTCDatetime = Annotated[datetime, AfterValidator(as_utc)]


class FieldError(BaseModel):
    field: str
    message: str


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: Optional[list[FieldError]] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


def column_values(model: BaseModel, document_fields: frozenset[str], **dump_kwargs) -> dict:
    """
    Dump a request model for assignment onto ORM columns. Fields stored as
    JSON documents are dumped in JSON mode (datetimes/decimals as strings).
    """
    values = model.model_dump(**dump_kwargs)
    documents = model.model_dump(include=set(document_fields) & set(values), mode="json", **dump_kwargs)
    values.update(documents)
    return values
