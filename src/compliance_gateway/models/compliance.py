"""
Compliance decision request/response models.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..core.compliance import ComplianceDecision, DecisionReason, MessageClass


class DecisionRequest(BaseModel):
    """A caller asking whether a message may be sent."""

    recipient: str = Field(
        min_length=1,
        max_length=320,
        description="Recipient email address, already validated by the caller"
    )
    message_class: MessageClass = Field(
        description="transactional, marketing or reminder"
    )
    consent: bool = Field(
        default=False,
        description="Caller-resolved marketing/reminder opt-in (ignored for transactional)"
    )


class DecisionResponse(BaseModel):
    """Allow/deny outcome with its reason."""

    allowed: bool = Field(description="Whether the message may be sent now")
    reason: DecisionReason = Field(description="Decision reason code")
    retryable: bool = Field(description="True if the caller should reschedule rather than drop")
    retry_at: Optional[datetime] = Field(
        default=None,
        description="Next instant the business-hours window opens, for rescheduling"
    )

    @classmethod
    def from_decision(cls, decision: ComplianceDecision) -> "DecisionResponse":
        return cls(
            allowed=decision.allowed,
            reason=decision.reason,
            retryable=decision.retryable,
            retry_at=decision.retry_at,
        )
