"""
Uniform success/failure envelope returned by every data service.
"""
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from ..storage.provider import StoreError


logger = structlog.get_logger(__name__)


class ServiceResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    data: Any = None
    id: Optional[str] = None
    count: Optional[int] = None
    source: Optional[str] = None
    fallback: bool = False

    def to_response(self) -> dict:
        return self.model_dump(exclude_none=True)


def invalid_argument(message: str) -> ServiceResult:
    return ServiceResult(success=False, error="invalid-argument", message=message)


def handle_store_error(error: StoreError, operation: str) -> ServiceResult:
    """Convert a store failure into a failure envelope."""
    logger.error("store_operation_failed", operation=operation, code=error.code, error=error.message)

    if error.code == "permission-denied":
        return ServiceResult(
            success=False,
            error="permission-denied",
            message="Access denied. Please check your permissions.",
        )

    if error.code == "unavailable":
        return ServiceResult(
            success=False,
            error="network-error",
            message="Network connection issue. Please try again later.",
        )

    return ServiceResult(
        success=False,
        error=error.code or "unknown",
        message=error.message or "An unknown error occurred",
    )
