"""
Compliance Gateway - send decisions, signed unsubscribe tokens and tax breakdowns

A FastAPI service that decides whether an outbound transactional, marketing
or reminder message may be sent, signs revocation links, and derives
VAT/fee breakdowns and invoice numbers for legal invoices.
"""

__version__ = "0.1.0"

from .main import app

__all__ = ["app"]
