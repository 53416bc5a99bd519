"""Error taxonomy shared by the warehouse client and the inventory API."""

from __future__ import annotations

INVALID_RESPONSE = "Server returned invalid response. Please try again."


class WarehouseError(RuntimeError):
    code = "warehouse_error"
    status_code = 500

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(WarehouseError):
    code = "validation_error"
    status_code = 400


class InsufficientStockError(ValidationError):
    code = "insufficient_stock"


class ConflictError(WarehouseError):
    code = "conflict"
    status_code = 409


class NotFoundError(WarehouseError):
    code = "not_found"
    status_code = 404


class AuthenticationError(WarehouseError):
    code = "unauthorized"
    status_code = 401


class TransportError(WarehouseError):
    code = "transport_error"
    status_code = 502


_BY_CODE: dict[str, type[WarehouseError]] = {
    cls.code: cls
    for cls in (
        ValidationError,
        InsufficientStockError,
        ConflictError,
        NotFoundError,
        AuthenticationError,
        TransportError,
    )
}

_BY_STATUS: dict[int, type[WarehouseError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthenticationError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}


def error_for(status_code: int, message: str, code: str | None = None) -> WarehouseError:
    """Rebuild the most specific error for an HTTP error response."""

    cls = _BY_CODE.get(code or "") or _BY_STATUS.get(status_code, WarehouseError)
    return cls(message, code=code)
