from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"
    message = "Request failed."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Any = None,
        extra: Optional[dict] = None,
    ) -> None:
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        self.details = details
        self.extra = extra or {}
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload = {"error": self.code, "code": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        payload.update(self.extra)
        return payload


class ValidationFailed(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_failed"
    message = "Request validation failed."


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Resource not found."


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    message = "Conflicting write."


class BarcodeInUse(ConflictError):
    code = "barcode_in_use"
    message = "Barcode is already attached to another item."

    def __init__(self, barcode: str, owner_item_id: int) -> None:
        self.barcode = barcode
        self.owner_item_id = owner_item_id
        super().__init__(extra={"item_id": owner_item_id, "barcode": barcode})


class StaleWriteConflict(ConflictError):
    message = "Item was modified more recently on the server."

    def __init__(self, server_item: dict, client_timestamp: int) -> None:
        self.server_item = server_item
        self.client_timestamp = client_timestamp
        super().__init__(
            extra={"server_item": server_item, "client_timestamp": client_timestamp}
        )


class InventoryNotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "inventory_not_found"
    message = "Inventory not found."

    def __init__(self, inventory_id: str) -> None:
        self.inventory_id = inventory_id
        super().__init__(details={"inventory_id": inventory_id})


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    message = "Not authenticated."


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "Insufficient role for this operation."


def install_error_handlers(app: FastAPI, *, production: bool = False) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError):
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.to_payload()),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError):
        errors = [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
        failed = ValidationFailed(details=errors)
        return JSONResponse(
            status_code=failed.status_code,
            content=jsonable_encoder(failed.to_payload()),
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        details = None if production else {"message": str(exc)}
        payload = {"error": "internal_error", "code": "internal_error", "message": "Internal server error."}
        if details is not None:
            payload["details"] = details
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)


__all__ = [
    "ApiError",
    "BarcodeInUse",
    "ConflictError",
    "Forbidden",
    "InventoryNotFound",
    "NotFoundError",
    "StaleWriteConflict",
    "Unauthorized",
    "ValidationFailed",
    "install_error_handlers",
]
