"""
Wiring of the gateway components.

Everything is built once from a ``Settings`` value and passed explicitly into
constructors; no component reads configuration on its own.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import structlog

from ..config import Settings
from .business_hours import BusinessHoursPolicy
from .clock import Clock, utc_now
from .compliance import ComplianceGate
from .links import UnsubscribeLinks
from .metrics import MetricsCollector
from .rate_limit import RateLimiter
from .tax import InvoiceIssuer, TaxCalculationEngine
from .tokens import NonceLedger, SecureTokenService

logger = structlog.get_logger(__name__)


@dataclass
class GatewayServices:
    """The process-wide component graph."""

    settings: Settings
    metrics: MetricsCollector
    tokens: SecureTokenService
    rate_limiter: RateLimiter
    business_hours: BusinessHoursPolicy
    compliance: ComplianceGate
    tax: TaxCalculationEngine
    links: UnsubscribeLinks
    nonce_ledger: Optional[NonceLedger] = None


def build_services(
    settings: Settings,
    metrics: Optional[MetricsCollector] = None,
    clock: Clock = utc_now,
) -> GatewayServices:
    """Construct every component from ``settings``."""
    settings.check_production_safety()

    metrics = metrics or MetricsCollector()
    nonce_ledger = NonceLedger() if settings.security.single_use_tokens else None

    tokens = SecureTokenService(
        secret=settings.security.signing_secret,
        ttl=timedelta(days=settings.security.token_ttl_days),
        grace_period=timedelta(days=settings.security.token_grace_days),
        clock=clock,
        nonce_ledger=nonce_ledger,
        metrics=metrics,
    )

    rate_limiter = RateLimiter(
        limit_per_hour=settings.rate_limit.limit_per_hour,
        window=timedelta(seconds=settings.rate_limit.window_seconds),
        lock_shards=settings.rate_limit.lock_shards,
        clock=clock,
        metrics=metrics,
    )

    business_hours = BusinessHoursPolicy(
        zone=settings.business_hours.zone,
        start_hour=settings.business_hours.start_hour,
        end_hour=settings.business_hours.end_hour,
    )

    tax_settings = settings.tax
    issuer = None
    if tax_settings.company_name:
        issuer = InvoiceIssuer(
            company_name=tax_settings.company_name,
            company_tax_id=tax_settings.company_tax_id,
            company_address=tax_settings.company_address,
            support_email=tax_settings.support_email,
        )

    services = GatewayServices(
        settings=settings,
        metrics=metrics,
        tokens=tokens,
        rate_limiter=rate_limiter,
        business_hours=business_hours,
        compliance=ComplianceGate(
            rate_limiter=rate_limiter,
            business_hours=business_hours,
            clock=clock,
            metrics=metrics,
        ),
        tax=TaxCalculationEngine(
            vat_rate=tax_settings.vat_rate,
            processing_fee_rate=tax_settings.processing_fee_rate,
            issuer=issuer,
            clock=clock,
            metrics=metrics,
        ),
        links=UnsubscribeLinks(settings.unsubscribe.base_url),
        nonce_ledger=nonce_ledger,
    )

    logger.info(
        "Gateway services built",
        environment=settings.environment,
        rate_limit_per_hour=settings.rate_limit.limit_per_hour,
        business_zone=settings.business_hours.zone,
        single_use_tokens=nonce_ledger is not None,
        invoice_issuer_configured=issuer is not None,
    )
    return services
