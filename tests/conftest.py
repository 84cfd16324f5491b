import asyncio
import logging
from typing import Any, Callable, List, Optional

import httpx
import pytest

from quote_relay.core.config import Settings
from quote_relay.main import create_app

SAMPLE_QUOTE = {
    "code": "USD",
    "codein": "BRL",
    "name": "Dólar Americano/Real Brasileiro",
    "high": "5.4612",
    "low": "5.4187",
    "varBid": "0.0123",
    "pctChange": "0.23",
    "bid": "5.43",
    "ask": "5.4311",
    "timestamp": "1718900000",
    "create_date": "2024-06-20 13:33:20",
}


@pytest.fixture
def sample_payload() -> dict:
    return {"USDBRL": dict(SAMPLE_QUOTE)}


@pytest.fixture
def make_upstream(sample_payload) -> Callable[..., httpx.MockTransport]:
    """Build a fake provider: optional delay, status, body and call log."""

    def _make(
        payload: Any = sample_payload,
        *,
        delay: float = 0.0,
        status: int = 200,
        content: Optional[bytes] = None,
        calls: Optional[List[httpx.Request]] = None,
    ) -> httpx.MockTransport:
        async def handler(request: httpx.Request) -> httpx.Response:
            if calls is not None:
                calls.append(request)
            if delay:
                await asyncio.sleep(delay)
            if content is not None:
                return httpx.Response(status, content=content)
            return httpx.Response(status, json=payload)

        return httpx.MockTransport(handler)

    return _make


@pytest.fixture
def settings(tmp_path) -> Settings:
    s = Settings(data_dir=tmp_path, db_path=tmp_path / "data.db")
    s.init_post_load()
    return s


@pytest.fixture
def roomy_settings(tmp_path) -> Settings:
    # persist budget loose enough for slow CI disks; ordering still holds
    s = Settings(data_dir=tmp_path, db_path=tmp_path / "data.db", persist_timeout_ms=100)
    s.init_post_load()
    return s


@pytest.fixture
def build_app(caplog) -> Callable[..., Any]:
    """create_app, with caplog still attached after init_logging resets the root logger."""

    def _build(*args: Any, **kwargs: Any):
        app = create_app(*args, **kwargs)
        logging.getLogger().addHandler(caplog.handler)
        return app

    return _build


@pytest.fixture
def persist_failures(caplog) -> Callable[[], int]:
    """Number of "quote persistence failed" records logged so far."""
    return lambda: sum(1 for r in caplog.records if r.getMessage() == "quote persistence failed")
