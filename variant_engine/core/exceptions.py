from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class CatalogException(HTTPException):
    """Base for every error the engine surfaces to a request layer.

    ``code`` is a stable machine-readable identifier (e.g. ``INVALID_ATTRIBUTE_KEY``);
    ``detail`` is the human-readable message.
    """

    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        code: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=self.default_status, detail=detail)
        self.code = code or self.default_code
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


class ValidationException(CatalogException):
    default_status = 422
    default_code = "VALIDATION_ERROR"


class NotFoundException(CatalogException):
    default_status = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ForbiddenException(CatalogException):
    default_status = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class ConflictException(CatalogException):
    default_status = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class InternalException(CatalogException):
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL_ERROR"


class DuplicateSkuError(Exception):
    """Raised by variant storage when the SKU unique constraint rejects a write."""

    def __init__(self, sku: str):
        super().__init__(f"SKU already taken: {sku}")
        self.sku = sku
