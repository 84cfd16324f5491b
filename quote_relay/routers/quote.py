from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse

from quote_relay.services.quotes.orchestrator import QuoteOrchestrator

"""Quote router.

Endpoints:
    - GET /cotacao -> current bid as a JSON string, e.g. "5.43"

Fetch failures surface as 500 through the QuoteFetchError handler. The quote
is persisted by a background task after the response body is fixed.
"""

router = APIRouter(tags=["quote"])


def get_orchestrator(request: Request) -> QuoteOrchestrator:
    return request.app.state.orchestrator


@router.get("/cotacao", summary="Current bid for the configured currency pair")
async def get_cotacao(
    background_tasks: BackgroundTasks,
    orchestrator: QuoteOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    deadline = orchestrator.new_request_deadline()
    quote = await orchestrator.handle(deadline, defer=background_tasks.add_task)
    return JSONResponse(content=quote.bid)
