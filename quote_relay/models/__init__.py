"""Pydantic domain models for the quote relay."""

from .quote import Quote, QuoteRecord

__all__ = [
    "Quote",
    "QuoteRecord",
]
