"""
Core business logic components.

This package contains the gateway components:
- Signed, expiring tokens (tokens)
- Per-recipient rate limiting (rate_limit)
- Business-hours policy (business_hours)
- Compliance decisions (compliance)
- Reverse tax calculation and invoice numbers (tax)
- Metrics, health and background sweeping
"""
