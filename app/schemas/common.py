"""Shared response envelopes and schema base classes."""

from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for API schemas: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ResponseMeta(BaseModel):
    timestamp: datetime = Field(..., description="Server time of the response")
    request_id: str = Field(..., description="Correlation id of the request")
    api_version: str = Field(default="v1", description="API version")


class ApiResponse(BaseModel):
    """Envelope returned by every JSON endpoint."""

    status: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human readable summary")
    data: Any = Field(default=None, description="Operation payload")
    meta: ResponseMeta


class ErrorDetail(BaseModel):
    """RFC 7807 style problem details."""

    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime


class Page(CamelModel, Generic[T]):
    """Pagination envelope ``{data, total, page, limit, totalPages}``."""

    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


class PageParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=200)
