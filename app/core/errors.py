# app/core/errors.py
"""Error taxonomy shared by services, providers and routes.

Every error carries a stable machine-readable ``code`` and an HTTP status.
Messages must never include credentials.
"""
from fastapi import Request
from fastapi.responses import JSONResponse


class AppError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class BadRequestError(AppError):
    code = "BAD_REQUEST"
    status_code = 400


class PreconditionError(AppError):
    """Required configuration is missing; raised before any external call."""

    code = "PRECONDITION"
    status_code = 400


class UnauthorizedError(AppError):
    code = "UNAUTHORIZED"
    status_code = 401


class ForbiddenError(AppError):
    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str = "Resource", message: str | None = None):
        super().__init__(message or f"{resource} not found")


class RateLimitedError(AppError):
    code = "TOO_MANY_REQUESTS"
    status_code = 429


class InternalError(AppError):
    pass


class BadGatewayError(AppError):
    code = "BAD_GATEWAY"
    status_code = 502


class UnreachableError(AppError):
    code = "SERVICE_UNAVAILABLE"
    status_code = 503


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        BadRequestError,
        PreconditionError,
        UnauthorizedError,
        ForbiddenError,
        NotFoundError,
        RateLimitedError,
        InternalError,
        BadGatewayError,
        UnreachableError,
    )
}


def error_from_code(code: str | None, message: str) -> AppError:
    cls = ERRORS_BY_CODE.get(code or "", BadGatewayError)
    if cls is NotFoundError:
        return NotFoundError(message=message)
    return cls(message)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
