"""
Single decision point for outbound sends.

Checks run in a fixed order: consent, then rate limit, then business hours
(reminders only). A message denied for consent never consumes a rate-limit
slot. Denials are returned as decisions, never raised.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

import structlog

from .business_hours import BusinessHoursPolicy
from .clock import Clock, utc_now
from .exceptions import InvalidRecipientError, ValidationError
from .masking import mask_email
from .rate_limit import RateLimiter

if TYPE_CHECKING:
    from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)


class MessageClass(str, Enum):
    """Classification of an outbound message."""

    TRANSACTIONAL = "transactional"
    MARKETING = "marketing"
    REMINDER = "reminder"


class DecisionReason(str, Enum):
    OK = "OK"
    CONSENT_DENIED = "CONSENT_DENIED"
    RATE_LIMITED = "RATE_LIMITED"
    OUTSIDE_BUSINESS_HOURS = "OUTSIDE_BUSINESS_HOURS"


@dataclass(frozen=True)
class ComplianceDecision:
    """Outcome of a send request."""

    allowed: bool
    reason: DecisionReason
    retry_at: Optional[datetime] = None

    @property
    def retryable(self) -> bool:
        """True when the caller should reschedule instead of dropping the message."""
        return self.reason is DecisionReason.OUTSIDE_BUSINESS_HOURS

    @classmethod
    def ok(cls) -> "ComplianceDecision":
        return cls(allowed=True, reason=DecisionReason.OK)

    @classmethod
    def deny(cls, reason: DecisionReason, retry_at: Optional[datetime] = None) -> "ComplianceDecision":
        return cls(allowed=False, reason=reason, retry_at=retry_at)


class ComplianceGate:
    """
    Combines caller-resolved consent, per-recipient rate limiting and the
    business-hours window into one allow/deny decision.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        business_hours: BusinessHoursPolicy,
        clock: Clock = utc_now,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.business_hours = business_hours
        self.clock = clock
        self.metrics = metrics

    def decide(
        self,
        recipient: str,
        message_class: MessageClass,
        consent: bool = False,
        now: Optional[datetime] = None,
    ) -> ComplianceDecision:
        """
        Decide whether ``recipient`` may receive a message of ``message_class``.

        ``consent`` is the caller's resolved opt-in flag; it is ignored for
        transactional messages, which are always permitted on consent grounds.
        """
        if not recipient:
            raise InvalidRecipientError()

        try:
            message_class = MessageClass(message_class)
        except ValueError:
            raise ValidationError(
                f"Unknown message class: {message_class}",
                error_code="invalid_message_class",
            )
        now = now or self.clock()

        decision = self._decide(recipient, message_class, consent, now)

        logger.info(
            "Compliance decision",
            recipient=mask_email(recipient),
            message_class=message_class.value,
            allowed=decision.allowed,
            reason=decision.reason.value,
        )
        if self.metrics:
            self.metrics.record_decision(message_class.value, decision.reason.value)

        return decision

    def _decide(
        self,
        recipient: str,
        message_class: MessageClass,
        consent: bool,
        now: datetime,
    ) -> ComplianceDecision:
        if message_class is not MessageClass.TRANSACTIONAL and not consent:
            return ComplianceDecision.deny(DecisionReason.CONSENT_DENIED)

        if not self.rate_limiter.allow(recipient, now=now):
            return ComplianceDecision.deny(DecisionReason.RATE_LIMITED)

        if message_class is MessageClass.REMINDER and not self.business_hours.is_within_window(now):
            return ComplianceDecision.deny(
                DecisionReason.OUTSIDE_BUSINESS_HOURS,
                retry_at=self.business_hours.next_window_start(now),
            )

        return ComplianceDecision.ok()
