from fastapi import Request
from fastapi.responses import JSONResponse
from starlette import status
import logging

logger = logging.getLogger("quote_relay.errors")


class QuoteFetchError(Exception):
    """The upstream quote could not be obtained within its budget.

    Covers transport failures, deadline expiry, error statuses and bodies that do
    not parse into a quote. Callers do not need to tell these apart.
    """


def http_error_handler(request: Request, exc):  # type: ignore
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "not_found" if exc.status_code == 404 else "http_error",
            "detail": f"No route for {request.method} {request.url.path}"
            if exc.status_code == 404
            else exc.detail,
        },
    )


def quote_unavailable_handler(request: Request, exc: QuoteFetchError):  # type: ignore
    logger.warning("quote unavailable: %s", exc, extra={"error": str(exc)})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "quote_unavailable",
            "detail": "Failed to obtain quote.",
        },
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
