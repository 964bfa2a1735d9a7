"""
Background service that bounds in-memory state.

Periodically drops lapsed rate-limit windows and, when single-use tokens are
enabled, consumed nonces whose tokens have expired.
"""

import asyncio
from typing import Optional

import structlog

from .clock import to_epoch_ms
from .rate_limit import RateLimiter
from .tokens import NonceLedger

logger = structlog.get_logger(__name__)


class RateWindowSweeper:
    """
    Background sweeper for expired rate-limit windows.

    Features:
    - Automatic startup/shutdown with the application lifespan
    - Periodic sweeping
    - Health reporting
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        nonce_ledger: Optional[NonceLedger] = None,
        sweep_interval_seconds: int = 300,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.nonce_ledger = nonce_ledger
        self.sweep_interval = sweep_interval_seconds
        self._task: Optional[asyncio.Task[None]] = None
        self._running = False

        logger.info("Rate window sweeper initialized", interval_seconds=sweep_interval_seconds)

    async def start(self) -> None:
        """Start the sweeper."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run_sweep_loop())

        logger.info("Rate window sweeper started")

    async def stop(self) -> None:
        """Stop the sweeper."""
        if not self._running:
            return

        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Rate window sweeper stopped")

    def sweep_once(self) -> int:
        """Run one sweep. Returns the number of rate windows removed."""
        removed = self.rate_limiter.sweep_expired()
        if self.nonce_ledger is not None:
            now_ms = to_epoch_ms(self.rate_limiter.clock())
            nonces_removed = self.nonce_ledger.sweep(now_ms)
            if nonces_removed:
                logger.info("Swept consumed token nonces", removed=nonces_removed)
        return removed

    async def _run_sweep_loop(self) -> None:
        """Main sweep loop."""
        while self._running:
            try:
                await asyncio.sleep(self.sweep_interval)
                removed = self.sweep_once()
                if removed:
                    logger.info(
                        "Sweep cycle completed",
                        windows_removed=removed,
                        windows_remaining=len(self.rate_limiter),
                    )
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Sweep loop error", error=str(e), error_type=type(e).__name__)

    def is_healthy(self) -> bool:
        """Check if the sweeper is running."""
        return self._running and self._task is not None and not self._task.done()
