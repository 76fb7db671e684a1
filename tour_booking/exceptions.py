"""
Domain errors raised by the booking services and the handlers that turn them
into the ``{"success": false, "message": ...}`` response envelope.
"""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class BookingServiceError(Exception):
    """Base class for errors a client can act on"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Booking service error"

    def __init__(self, message: str = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, **self.extra}


class InvalidInput(BookingServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or incomplete request data"


class NotFound(BookingServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class PackageNotFound(NotFound):
    default_message = "Package not found"


class Conflict(BookingServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Request conflicts with existing data"


class AlreadyRedeemed(BookingServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Ticket has already been used"


class Voided(BookingServiceError):
    status_code = status.HTTP_410_GONE
    default_message = "Ticket has been voided"


class InvalidState(BookingServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Ticket status is not valid for check-in"


class PaymentIncomplete(BookingServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Payment has not been completed"


def register_exception_handlers(app: FastAPI, expose_errors: bool = False):
    """Attach the response-envelope handlers to ``app``"""

    @app.exception_handler(BookingServiceError)
    async def booking_error_handler(request: Request, exc: BookingServiceError):
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        content = {"success": False, "message": exc.detail}
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            content = {"success": False, "message": "Endpoint not found", "path": request.url.path}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg"),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": InvalidInput.default_message, "errors": errors}
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content = {"success": False, "message": "Internal server error"}
        if expose_errors:
            content["error"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
