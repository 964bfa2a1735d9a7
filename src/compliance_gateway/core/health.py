"""
Health checker for the gateway's in-process dependencies.

Checks:
- Signing configuration (secret present, not the development fallback outside dev)
- Business-hours zone resolvable
- Background sweeper running
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from ..config import DEV_SIGNING_SECRET
from .business_hours import resolve_zone
from .services import GatewayServices
from .sweeper import RateWindowSweeper

logger = structlog.get_logger(__name__)


@dataclass
class HealthCheck:
    """Individual health check result."""
    name: str
    status: str  # "healthy", "unhealthy"
    message: str
    details: Dict[str, Any]
    last_check: float


@dataclass
class HealthStatus:
    """Overall health status."""
    is_healthy: bool
    checks: Dict[str, HealthCheck]
    failed_checks: List[str]
    timestamp: float


class HealthChecker:
    """Runs the readiness checks against the live component graph."""

    def __init__(self, services: GatewayServices, sweeper: Optional[RateWindowSweeper] = None) -> None:
        self.services = services
        self.sweeper = sweeper

    async def check_all(self) -> HealthStatus:
        """Perform all health checks and return overall status."""
        checks: Dict[str, HealthCheck] = {}
        failed_checks: List[str] = []

        for check in (self._check_signing, self._check_time_zone, self._check_sweeper):
            try:
                result = check()
            except Exception as e:
                logger.error("Health check raised", check=check.__name__, error=str(e))
                result = HealthCheck(
                    name=check.__name__.replace("_check_", ""),
                    status="unhealthy",
                    message=f"Check failed: {str(e)}",
                    details={"error": str(e), "error_type": type(e).__name__},
                    last_check=time.time(),
                )
            checks[result.name] = result
            if result.status != "healthy":
                failed_checks.append(result.name)

        return HealthStatus(
            is_healthy=not failed_checks,
            checks=checks,
            failed_checks=failed_checks,
            timestamp=time.time(),
        )

    def _check_signing(self) -> HealthCheck:
        settings = self.services.settings
        secret = settings.security.signing_secret
        using_fallback = secret == DEV_SIGNING_SECRET

        if not secret or (using_fallback and not settings.is_development):
            status, message = "unhealthy", "Signing secret is not configured"
        else:
            status, message = "healthy", "Signing secret configured"

        return HealthCheck(
            name="signing",
            status=status,
            message=message,
            details={"environment": settings.environment, "development_secret": using_fallback},
            last_check=time.time(),
        )

    def _check_time_zone(self) -> HealthCheck:
        zone = self.services.business_hours.zone_name
        resolve_zone(zone)
        return HealthCheck(
            name="time_zone",
            status="healthy",
            message=f"Time zone {zone} resolved",
            details={"zone": zone},
            last_check=time.time(),
        )

    def _check_sweeper(self) -> HealthCheck:
        running = self.sweeper is not None and self.sweeper.is_healthy()
        return HealthCheck(
            name="sweeper",
            status="healthy" if running else "unhealthy",
            message="Sweeper running" if running else "Sweeper not running",
            details={"tracked_recipients": len(self.services.rate_limiter)},
            last_check=time.time(),
        )
