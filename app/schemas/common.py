"""Shared response envelope and error body."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ResponseMeta(BaseModel):
    timestamp: datetime
    request_id: str
    api_version: str = "v1"


class ApiResponse(BaseModel):
    """Envelope returned by every successful API call."""

    status: bool = True
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    meta: ResponseMeta


class ErrorDetail(BaseModel):
    """RFC 7807 style problem detail with a stable machine-readable code."""

    title: str
    status: int
    detail: str
    code: str
    instance: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime
