"""
Error taxonomy for the movement ledger.

Every error carries a stable `kind`, a human message, and a context dict with
the offending field/value so callers can self-diagnose without server logs.
`main.py` maps these to `{kind, message, context}` JSON responses.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import status
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError


class LedgerError(Exception):
    kind: str = "LedgerError"
    http_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.context:
            out["context"] = self.context
        return out


class MissingField(LedgerError):
    kind = "MissingField"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidKind(LedgerError):
    kind = "InvalidKind"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidQuantity(LedgerError):
    kind = "InvalidQuantity"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class ProductNotFound(LedgerError):
    kind = "ProductNotFound"
    http_status = status.HTTP_404_NOT_FOUND


class LocationNotFound(LedgerError):
    kind = "LocationNotFound"
    http_status = status.HTTP_404_NOT_FOUND


class ActorNotFound(LedgerError):
    kind = "ActorNotFound"
    http_status = status.HTTP_404_NOT_FOUND


class InsufficientStock(LedgerError):
    kind = "InsufficientStock"
    http_status = status.HTTP_409_CONFLICT


class InvalidReference(LedgerError):
    kind = "InvalidReference"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class ActorProvisioningFailed(LedgerError):
    kind = "ActorProvisioningFailed"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE


class StorageUnavailable(LedgerError):
    kind = "StorageUnavailable"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE


@asynccontextmanager
async def storage_guard(operation: str):
    """
    Translate driver errors raised while talking to the store. Never retries.

    Values the store refuses (out-of-range data, dangling references) become
    InvalidReference; everything else from the driver is StorageUnavailable.
    """
    try:
        yield
    except (DataError, IntegrityError) as e:
        raise InvalidReference(
            f"Store rejected a value during {operation}",
            {"operation": operation, "error": str(e.orig or e)},
        ) from e
    except DBAPIError as e:
        raise StorageUnavailable(
            f"Storage unavailable during {operation}",
            {"operation": operation, "error": str(e.orig or e)},
        ) from e
