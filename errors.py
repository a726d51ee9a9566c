import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple, Type

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ValidationFailed(HTTPException):
    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(status_code=400, detail=message)
        self.errors = errors

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "ValidationFailed":
        return cls(format_errors(exc.errors()))

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailed":
        return cls([{"field": field, "message": message}])


class Unauthenticated(HTTPException):
    """401 carrying the reason the caller could not be resolved to an admin."""

    def __init__(self, kind: str, message: str):
        super().__init__(status_code=401, detail=message)
        self.kind = kind


def not_found(name: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{name} not found")


def forbidden(permission: str) -> HTTPException:
    return HTTPException(status_code=403, detail=f"Access denied. Required permission: {permission}")


def format_errors(raw: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    errors = []
    for err in raw:
        # Request-level locations are prefixed with body/query/path
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return errors


def envelope(success: bool, message: Optional[str] = None, data: Any = None, errors: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if errors is not None:
        body["errors"] = errors
    return body


@contextmanager
def server_errors(action: str, passthrough: Tuple[Type[Exception], ...] = ()):
    """Turn unexpected failures inside a controller operation into a generic 500.

    Exceptions listed in passthrough propagate so the caller can recover from them.
    """
    try:
        yield
    except (HTTPException,) + passthrough:
        raise
    except Exception:
        logger.exception("Server error while %s", action)
        raise HTTPException(status_code=500, detail=f"Server error while {action}")


def register_error_handlers(app: FastAPI):
    """Register envelope-shaped handlers so callers never see a raw stack trace"""

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = exc.detail
        if exc.status_code == 404 and message == "Not Found":
            message = "Route not found"
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope(False, message=message, errors=getattr(exc, "errors", None)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=envelope(False, message="Validation failed", errors=format_errors(exc.errors())),
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=envelope(False, message="Server error"))
