"""Quote client: fetch the current bid from the relay and write it to a file.

One bounded GET per invocation. On any failure a diagnostic is printed, nothing
is written and the process exits with status 1.

Example:
    quote-relay-client --output cotacao.txt --timeout-ms 300
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Optional, Sequence

import httpx

from quote_relay.core.config import ClientSettings
from quote_relay.core.deadlines import Deadline


class QuoteClientError(Exception):
    pass


async def fetch_bid(
    url: str,
    deadline: Deadline,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """GET `url` within `deadline` and return the JSON string body."""
    try:
        async with deadline.scope():
            async with httpx.AsyncClient(
                timeout=deadline.remaining(), transport=transport
            ) as client:
                resp = await client.get(url, headers={"Accept": "application/json"})
    except TimeoutError as e:
        raise QuoteClientError(f"no response from {url} within the deadline") from e
    except httpx.TransportError as e:
        raise QuoteClientError(f"request to {url} failed: {e!r}") from e

    if resp.status_code != 200:
        raise QuoteClientError(f"server answered HTTP {resp.status_code}: {resp.text[:200]}")
    try:
        bid = resp.json()
    except ValueError as e:
        raise QuoteClientError(f"response is not valid JSON: {e}") from e
    if not isinstance(bid, str) or not bid.strip():
        raise QuoteClientError(f"expected a JSON string bid, got {bid!r}")
    return bid


def save_bid(bid: str, path: Path) -> Path:
    path.write_text(f"Dólar: {bid}", encoding="utf-8")
    return path


def _parse_args(argv: Optional[Sequence[str]], defaults: ClientSettings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch the current USD-BRL bid from the quote relay.")
    parser.add_argument("--url", default=defaults.server_url, help="Relay endpoint URL")
    parser.add_argument("--output", type=Path, default=defaults.output_path, help="Output file")
    parser.add_argument(
        "--timeout-ms", type=int, default=defaults.timeout_ms, help="Overall call budget in ms"
    )
    return parser.parse_args(argv)


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    args = _parse_args(argv, ClientSettings())

    async def _fetch() -> str:
        return await fetch_bid(args.url, Deadline.after(args.timeout_ms / 1000), transport=transport)

    try:
        bid = asyncio.run(_fetch())
    except QuoteClientError as e:
        print(f"Failed to get quote from server: {e}")
        return 1

    try:
        save_bid(bid, args.output)
    except OSError as e:
        print(f"Failed to write {args.output}: {e}")
        return 1

    print(f"Quote saved to {args.output}")
    return 0


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
