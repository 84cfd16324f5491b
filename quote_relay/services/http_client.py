from __future__ import annotations

"""Async HTTP helper for single bounded JSON GETs.

The caller owns the deadline: wrap the call in `Deadline.scope()` and the
request (connection included) is torn down as soon as the scope expires. No
retries are attempted here.
"""
from typing import Any, Dict, Optional

import httpx


class HttpError(Exception):
    pass


async def get_json(
    url: str,
    *,
    timeout: Optional[float] = None,
    headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        # construction errors (bad URL) are setup faults and propagate as-is
        request = client.build_request("GET", url, headers=headers)
        try:
            resp = await client.send(request)
        except httpx.TransportError as e:
            raise HttpError(f"request to {url} failed: {e!r}") from e
        if resp.status_code >= 400:
            raise HttpError(f"HTTP {resp.status_code} for {url}")
        try:
            return resp.json()
        except ValueError as e:  # JSON decode
            raise HttpError(f"invalid JSON from {url}: {e}") from e
