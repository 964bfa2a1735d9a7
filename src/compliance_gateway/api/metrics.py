"""
Prometheus metrics endpoint.

Exposes metrics in Prometheus text format for scraping.
"""

import structlog
from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="""
    Prometheus metrics endpoint in standard text format.

    **Key Metrics:**
    - compliance_decisions_total{message_class,reason} - Gate outcomes
    - tokens_issued_total - Signed tokens issued
    - token_verifications_total{result} - Verification outcomes
    - invoices_issued_total - Tax invoices created
    - rate_limit_entries - Recipients currently tracked
    - http_request_duration_seconds - Request latency histogram
    """,
)
async def get_metrics(request: Request) -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format for scraping.
    """
    services = getattr(request.app.state, 'services', None)

    if services is None:
        logger.warning("Metrics collector not initialized")
        return Response(
            content="# Metrics collector not initialized\n",
            media_type=CONTENT_TYPE_LATEST,
        )

    metrics = services.metrics
    metrics.update_system_metrics()
    metrics.rate_limit_entries.set(len(services.rate_limiter))
    metrics_data = generate_latest(metrics.registry)

    logger.debug("Metrics scraped successfully", size_bytes=len(metrics_data))

    return Response(
        content=metrics_data,
        media_type=CONTENT_TYPE_LATEST,
    )
