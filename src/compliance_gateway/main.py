"""
Main FastAPI application entry point.

This module sets up the FastAPI app with all middleware, routes, and lifecycle events.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Optional

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .api import compliance_router, healthz_router, invoices_router, metrics_router, tokens_router
from .config import Settings, get_settings
from .core.clock import Clock, utc_now
from .core.exceptions import GatewayException, TokenVerificationError
from .core.health import HealthChecker
from .core.services import GatewayServices, build_services
from .core.sweeper import RateWindowSweeper


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler(services: GatewayServices) -> Any:
    """Create a lifespan handler with access to the component graph."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Starts the rate window sweeper and health checker, stops them on shutdown.
        """
        logger = structlog.get_logger(__name__)
        logger.info("Starting compliance gateway", version=app.version)

        sweeper = RateWindowSweeper(
            rate_limiter=services.rate_limiter,
            nonce_ledger=services.nonce_ledger,
            sweep_interval_seconds=services.settings.rate_limit.sweep_interval_seconds,
        )
        app.state.sweeper = sweeper
        await sweeper.start()

        app.state.health_checker = HealthChecker(services, sweeper)

        try:
            logger.info("Compliance gateway started successfully")
            yield
        finally:
            logger.info("Shutting down compliance gateway")
            await sweeper.stop()
            logger.info("Compliance gateway shutdown complete")

    return lifespan


def create_app(settings: Optional[Settings] = None, clock: Clock = utc_now) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Components are built here, once, so an unsafe configuration fails at
    startup rather than on the first request.
    """
    settings = settings or get_settings()

    configure_logging(settings.log_level)

    services = build_services(settings, clock=clock)

    app = FastAPI(
        title="Compliance Gateway",
        description="Send compliance decisions, signed unsubscribe tokens and tax breakdowns",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=create_lifespan_handler(services),
    )
    app.state.services = services

    @app.middleware("http")
    async def record_request_metrics(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        services.metrics.record_request(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
            duration_seconds=time.perf_counter() - start,
        )
        return response

    @app.exception_handler(GatewayException)
    async def gateway_exception_handler(request: Request, exc: GatewayException) -> JSONResponse:
        """Handle custom gateway exceptions."""
        logger = structlog.get_logger(__name__)

        if isinstance(exc, TokenVerificationError):
            # The specific reason stays server-side
            logger.info(
                "Rejected signed token",
                reason=exc.reason.value,
                path=request.url.path,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.error_code,
                    "message": "Invalid or expired link",
                    "details": {},
                },
            )

        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Gateway exception occurred",
            error=str(exc),
            error_code=exc.error_code,
            status_code=exc.status_code,
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error_code,
                "message": str(exc),
                "details": exc.details,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "Unexpected exception occurred",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    # Include routers
    app.include_router(compliance_router, prefix="/v1", tags=["compliance"])
    app.include_router(tokens_router, prefix="/v1", tags=["tokens"])
    app.include_router(invoices_router, prefix="/v1", tags=["invoices"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(healthz_router, tags=["health"])

    @app.get("/", include_in_schema=False)
    async def root() -> Dict[str, str]:
        """Root endpoint with service information."""
        return {
            "service": "Compliance Gateway",
            "version": app.version,
            "docs": "/docs",
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "compliance_gateway.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
