from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Quote(BaseModel):
    """One currency-pair snapshot as reported by the provider.

    Numeric fields stay text so upstream precision is passed through untouched.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    code: Optional[str] = None
    codein: Optional[str] = None
    name: Optional[str] = None
    high: Optional[str] = None
    low: Optional[str] = None
    var_bid: Optional[str] = Field(None, alias="varBid")
    pct_change: Optional[str] = Field(None, alias="pctChange")
    bid: str
    ask: Optional[str] = None
    timestamp: Optional[str] = None
    create_date: Optional[str] = None

    @field_validator("bid")
    @classmethod
    def bid_present(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("bid must be a non-empty string")
        return v

    @classmethod
    def from_payload(cls, payload: Any, pair: str) -> "Quote":
        """Extract the `pair` entry of a provider body, e.g. {"USDBRL": {...}}."""
        if not isinstance(payload, dict):
            raise ValueError("quote payload must be a JSON object")
        entry = payload.get(pair)
        if not isinstance(entry, dict):
            raise ValueError(f"quote payload has no '{pair}' object")
        return cls.model_validate(entry)


class QuoteRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    quote: Quote
