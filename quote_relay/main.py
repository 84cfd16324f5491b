import logging
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .db.dal import QuoteStore
from .db.schema import init_db
from .routers import quote
from .services.quotes.base import QuoteFetcher, QuoteSink
from .services.quotes.orchestrator import QuoteOrchestrator
from .services.quotes.providers import make_quote_fetcher


def create_app(
    settings_override: Settings | None = None,
    *,
    fetcher: Optional[QuoteFetcher] = None,
    sink: Optional[QuoteSink] = None,
    upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    fetcher / sink / upstream_transport: substitutes for the provider call and
    the quote store, wired into the orchestrator instead of the defaults.
    """
    settings = settings_override or get_settings()
    if settings.db_path is None:
        settings.init_post_load()
    init_logging(debug=settings.debug)

    # Ensure the quotes table exists (idempotent)
    try:
        init_db(settings.db_path)  # type: ignore[arg-type]
    except Exception:
        logging.getLogger("quote_relay").exception("failed to initialise database on startup")
        raise

    if fetcher is None:
        fetcher = make_quote_fetcher(
            settings.quote_provider,
            url=str(settings.provider_url),
            pair=settings.currency_pair,
            transport=upstream_transport,
        )
    if sink is None:
        sink = QuoteStore(settings.db_path)  # type: ignore[arg-type]

    app = FastAPI(
        title=settings.app_name, debug=settings.debug, version=settings.version
    )
    app.state.settings = settings
    app.state.orchestrator = QuoteOrchestrator(fetcher, sink, settings.budgets)

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.http_error_handler)
    app.add_exception_handler(errors.QuoteFetchError, errors.quote_unavailable_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(quote.router)

    return app


def serve() -> None:
    """Console entry point: run the server on the configured host/port."""
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    serve()
