from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """Error carried from the gateway or store up to the action boundary."""

    code = "INTERNAL"
    default_status = 500

    def __init__(self, code: str | None = None, message: str = "", http_status: int | None = None):
        self.code = str(code or self.code)
        self.message = str(message or self.code)
        self.http_status = self.default_status if http_status is None else int(http_status)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "httpStatus": self.http_status}


class ValidationError(ApiError):
    """Local precondition failed; raised before any network call."""

    code = "BAD_REQUEST"
    default_status = 400

    def __init__(self, message: str):
        super().__init__(None, message)


class TransportError(ApiError):
    """Network or HTTP failure talking to the report service."""

    code = "TRANSPORT"
    default_status = 0

    def __init__(self, message: str, http_status: int | None = None):
        super().__init__(None, message, http_status=http_status)


class NotFoundError(TransportError):
    code = "NOT_FOUND"
    default_status = 404

    def __init__(self, message: str, http_status: int | None = 404):
        super().__init__(message, http_status=http_status)


class MalformedParametersError(ApiError):
    """Stored report parameters could not be turned back into a request."""

    code = "MALFORMED_PARAMETERS"
    default_status = 422

    def __init__(self, message: str):
        super().__init__(None, message)
