from typing import Any, Optional

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorMeta(BaseModel):
    timestamp: str
    path: str


class ErrorResponse(BaseModel):
    """Body of every non-2xx response produced by the exception handlers."""

    success: bool = False
    error: ErrorDetail
    meta: ErrorMeta
