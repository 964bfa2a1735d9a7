"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /v1/compliance/decide - Send decision
- /v1/tokens/unsubscribe, /v1/unsubscribe - Signed unsubscribe tokens
- /v1/invoices/* - Tax breakdowns and invoices
- /metrics - Prometheus metrics
- /healthz, /readyz - Health checks
"""
from .compliance import router as compliance_router
from .healthz import router as healthz_router
from .invoices import router as invoices_router
from .metrics import router as metrics_router
from .tokens import router as tokens_router

__all__ = [
    "compliance_router",
    "healthz_router",
    "invoices_router",
    "metrics_router",
    "tokens_router",
]
