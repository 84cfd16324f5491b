from __future__ import annotations

"""Concrete quote fetchers and factory.

'AwesomeApiQuoteFetcher' calls the public economia.awesomeapi.com.br endpoint.
'StaticQuoteFetcher' returns a fixed sample so the server can run offline.
"""
import logging
from typing import Dict, Optional, Type

import httpx

from quote_relay.core.deadlines import Deadline
from quote_relay.core.errors import QuoteFetchError
from quote_relay.models import Quote
from quote_relay.services.http_client import HttpError, get_json
from .base import QuoteFetcher

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_URL = "https://economia.awesomeapi.com.br/json/last/USD-BRL"

_STATIC_QUOTE: Dict[str, str] = {
    "code": "USD",
    "codein": "BRL",
    "name": "Dólar Americano/Real Brasileiro",
    "high": "5.4612",
    "low": "5.4187",
    "varBid": "0.0123",
    "pctChange": "0.23",
    "bid": "5.4301",
    "ask": "5.4311",
    "timestamp": "1718900000",
    "create_date": "2024-06-20 13:33:20",
}


class AwesomeApiQuoteFetcher(QuoteFetcher):
    def __init__(
        self,
        url: str = DEFAULT_PROVIDER_URL,
        pair: str = "USDBRL",
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.pair = pair
        self._transport = transport

    async def fetch(self, deadline: Deadline) -> Quote:
        try:
            async with deadline.scope():
                payload = await get_json(
                    self.url,
                    timeout=deadline.remaining(),
                    headers={"Accept": "application/json"},
                    transport=self._transport,
                )
        except TimeoutError as e:
            raise QuoteFetchError(f"upstream deadline exceeded for {self.url}") from e
        except HttpError as e:
            raise QuoteFetchError(str(e)) from e

        try:
            return Quote.from_payload(payload, self.pair)
        except ValueError as e:  # pydantic ValidationError included
            raise QuoteFetchError(f"malformed quote payload: {e}") from e


class StaticQuoteFetcher(QuoteFetcher):
    async def fetch(self, deadline: Deadline) -> Quote:  # type: ignore[override]
        if deadline.expired:
            raise QuoteFetchError("deadline already expired")
        return Quote.model_validate(_STATIC_QUOTE)


_PROVIDER_REGISTRY: Dict[str, Type[QuoteFetcher]] = {
    "awesomeapi": AwesomeApiQuoteFetcher,
    "static": StaticQuoteFetcher,
}


def make_quote_fetcher(
    kind: str,
    *,
    url: str = DEFAULT_PROVIDER_URL,
    pair: str = "USDBRL",
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> QuoteFetcher:
    cls = _PROVIDER_REGISTRY.get(kind)
    if not cls:
        raise ValueError(f"Unknown quote provider kind '{kind}'")
    if cls is AwesomeApiQuoteFetcher:
        return AwesomeApiQuoteFetcher(url, pair, transport=transport)
    logger.info("using %s quote provider", kind)
    return cls()
