"""
Pydantic data models package.

Contains request/response models for:
- Compliance decisions
- Signed unsubscribe tokens
- Tax breakdowns and invoices
"""

from .compliance import DecisionRequest, DecisionResponse
from .errors import ErrorResponse
from .invoices import (
    InvoiceNumberResponse,
    InvoiceRequest,
    InvoiceResponse,
    TaxBreakdownRequest,
    TaxBreakdownResponse,
)
from .tokens import UnsubscribeTokenRequest, UnsubscribeTokenResponse, UnsubscribeVerification

__all__ = [
    # Compliance models
    "DecisionRequest",
    "DecisionResponse",

    # Token models
    "UnsubscribeTokenRequest",
    "UnsubscribeTokenResponse",
    "UnsubscribeVerification",

    # Invoice models
    "TaxBreakdownRequest",
    "TaxBreakdownResponse",
    "InvoiceRequest",
    "InvoiceResponse",
    "InvoiceNumberResponse",

    "ErrorResponse",
]
