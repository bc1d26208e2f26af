"""
Global error handling middleware.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from agroclima.infrastructure.geocoding_client import GeocodingError
from agroclima.infrastructure.source_adapter import SourceFailure
from agroclima.services.domain.request_validator import InputValidationError


logger = logging.getLogger(__name__)


def failure_body(error: str, source=None, debug=None) -> dict:
    """Failure payload shared by every endpoint."""
    body = {"success": False, "error": error}
    if source is not None:
        body["source"] = source
    if debug is not None:
        body["debug"] = debug
    return body


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns consistent error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and handle any exceptions.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            Response object
        """
        try:
            response = await call_next(request)
            return response

        except InputValidationError as e:
            logger.warning(
                f"Validation error: {e.message}",
                extra={"path": request.url.path, "method": request.method},
            )
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=failure_body(e.message, source=e.source, debug=e.debug),
            )

        except SourceFailure as e:
            logger.error(
                f"Upstream source failure: {e.message}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "upstream_status": e.status_code,
                },
            )
            return JSONResponse(
                status_code=status.HTTP_502_BAD_GATEWAY,
                content=failure_body(
                    e.message,
                    source=e.source.value if e.source else None,
                    debug=e.to_debug(),
                ),
            )

        except GeocodingError as e:
            logger.error(
                f"Geocoding error: {e.message}",
                extra={"path": request.url.path, "method": request.method},
            )
            return JSONResponse(
                status_code=e.status_code,
                content=failure_body(e.message),
            )

        except ValueError as e:
            logger.warning(
                f"Validation error: {str(e)}",
                extra={"path": request.url.path, "method": request.method},
            )
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=failure_body(str(e)),
            )

        except Exception as e:
            logger.exception(
                f"Unhandled exception: {str(e)}",
                extra={"path": request.url.path, "method": request.method},
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=failure_body("An unexpected error occurred"),
            )
