"""
Prometheus metrics collection.

In-memory counters on a dedicated registry; Prometheus handles storage.
"""

import time
from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for the compliance gateway.

    Each collector owns its registry so that several app instances (tests,
    workers) can coexist in one interpreter.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()

        self.service_info = Info(
            "compliance_gateway_service",
            "Compliance gateway service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": "0.1.0",
            "service": "compliance-gateway",
        })

        # Request metrics
        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0],
            registry=self.registry,
        )

        # Compliance decisions
        self.decisions_total = Counter(
            "compliance_decisions_total",
            "Total compliance decisions",
            ["message_class", "reason"],
            registry=self.registry,
        )

        # Signed tokens
        self.tokens_issued_total = Counter(
            "tokens_issued_total",
            "Total signed tokens issued",
            registry=self.registry,
        )

        self.token_verifications_total = Counter(
            "token_verifications_total",
            "Total signed token verifications",
            ["result"],
            registry=self.registry,
        )

        # Invoices
        self.invoices_issued_total = Counter(
            "invoices_issued_total",
            "Total tax invoices created",
            registry=self.registry,
        )

        # Rate limiter
        self.rate_limit_entries = Gauge(
            "rate_limit_entries",
            "Recipients currently tracked by the rate limiter",
            registry=self.registry,
        )

        self.rate_limit_swept_total = Counter(
            "rate_limit_swept_total",
            "Expired rate limit windows removed",
            registry=self.registry,
        )

        self.uptime_seconds = Gauge(
            "uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )

        self._start_time = time.time()

    def record_request(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration_seconds: float
    ) -> None:
        """Record HTTP request metrics."""
        self.requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self.request_duration.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration_seconds)

    def record_decision(self, message_class: str, reason: str) -> None:
        self.decisions_total.labels(message_class=message_class, reason=reason).inc()

    def record_token_issued(self) -> None:
        self.tokens_issued_total.inc()

    def record_token_verification(self, result: str) -> None:
        self.token_verifications_total.labels(result=result).inc()

    def record_invoice_issued(self) -> None:
        self.invoices_issued_total.inc()

    def record_rate_limit_sweep(self, removed: int, remaining: int) -> None:
        """Record a sweep of expired rate limit windows."""
        if removed:
            self.rate_limit_swept_total.inc(removed)
        self.rate_limit_entries.set(remaining)

    def update_system_metrics(self) -> None:
        self.uptime_seconds.set(time.time() - self._start_time)
