import asyncio
import time

import httpx
import pytest

from quote_relay.core.deadlines import Deadline
from quote_relay.core.errors import QuoteFetchError
from quote_relay.models import Quote
from quote_relay.services.quotes.providers import (
    AwesomeApiQuoteFetcher,
    StaticQuoteFetcher,
    make_quote_fetcher,
)

URL = "https://provider.test/json/last/USD-BRL"


def _fetch(transport, budget: float = 0.2) -> Quote:
    fetcher = AwesomeApiQuoteFetcher(URL, transport=transport)
    return asyncio.run(fetcher.fetch(Deadline.after(budget)))


def test_parses_full_payload(make_upstream):
    quote = _fetch(make_upstream())
    assert quote.bid == "5.43"
    assert quote.code == "USD"
    assert quote.codein == "BRL"
    assert quote.var_bid == "0.0123"
    assert quote.pct_change == "0.23"
    assert quote.create_date == "2024-06-20 13:33:20"


def test_optional_fields_may_be_absent(make_upstream):
    quote = _fetch(make_upstream({"USDBRL": {"bid": "5.43"}}))
    assert quote.bid == "5.43"
    assert quote.ask is None and quote.name is None


def test_bid_kept_verbatim(make_upstream):
    quote = _fetch(make_upstream({"USDBRL": {"bid": "5.43010000"}}))
    assert quote.bid == "5.43010000"


def test_issues_single_get(make_upstream):
    calls = []
    _fetch(make_upstream(calls=calls))
    assert len(calls) == 1
    assert calls[0].method == "GET"
    assert str(calls[0].url) == URL


@pytest.mark.parametrize(
    "payload",
    [
        {"USDBRL": {"ask": "5.44"}},
        {"USDBRL": {"bid": ""}},
        {"USDBRL": {"bid": 5.43}},
        {"EURBRL": {"bid": "6.01"}},
        ["5.43"],
    ],
)
def test_malformed_payload_is_fetch_error(make_upstream, payload):
    with pytest.raises(QuoteFetchError):
        _fetch(make_upstream(payload))


def test_invalid_json_is_fetch_error(make_upstream):
    with pytest.raises(QuoteFetchError):
        _fetch(make_upstream(content=b"<html>oops</html>"))


def test_error_status_is_fetch_error(make_upstream):
    with pytest.raises(QuoteFetchError):
        _fetch(make_upstream(status=503))


def test_transport_failure_is_fetch_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(QuoteFetchError):
        _fetch(httpx.MockTransport(refuse))


def test_slow_provider_cancelled_at_deadline(make_upstream):
    started = time.monotonic()
    with pytest.raises(QuoteFetchError):
        _fetch(make_upstream(delay=2.0), budget=0.1)
    assert time.monotonic() - started < 1.0


def test_static_fetcher_returns_sample():
    quote = asyncio.run(StaticQuoteFetcher().fetch(Deadline.after(0.2)))
    assert quote.code == "USD" and quote.bid


def test_factory_selects_provider():
    assert isinstance(make_quote_fetcher("static"), StaticQuoteFetcher)
    fetcher = make_quote_fetcher("awesomeapi", url=URL)
    assert isinstance(fetcher, AwesomeApiQuoteFetcher) and fetcher.url == URL
    with pytest.raises(ValueError):
        make_quote_fetcher("nope")
