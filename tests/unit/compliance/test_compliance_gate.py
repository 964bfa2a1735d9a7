"""
Tests for the compliance gate decision ordering.
"""

import pytest

from compliance_gateway.core.compliance import (
    ComplianceDecision,
    ComplianceGate,
    DecisionReason,
    MessageClass,
)
from compliance_gateway.core.exceptions import InvalidRecipientError, ValidationError
from compliance_gateway.core.metrics import MetricsCollector
from compliance_gateway.core.rate_limit import RateLimiter

from tests.conftest import AFTER_HOURS_UTC, FrozenClock, utc_datetime


class TestConsent:
    """Test consent handling per message class."""

    def test_transactional_ignores_consent(self, gate: ComplianceGate):
        decision = gate.decide("jane@example.com", MessageClass.TRANSACTIONAL, consent=False)

        assert decision.allowed is True
        assert decision.reason is DecisionReason.OK

    @pytest.mark.parametrize("message_class", [MessageClass.MARKETING, MessageClass.REMINDER])
    def test_non_transactional_requires_consent(self, gate: ComplianceGate, message_class: MessageClass):
        decision = gate.decide("jane@example.com", message_class, consent=False)

        assert decision.allowed is False
        assert decision.reason is DecisionReason.CONSENT_DENIED
        assert decision.retryable is False

    def test_consent_denial_does_not_consume_rate_slot(self, gate: ComplianceGate, rate_limiter: RateLimiter):
        for _ in range(5):
            gate.decide("jane@example.com", MessageClass.MARKETING, consent=False)

        assert rate_limiter.get_entry("jane@example.com") is None

    def test_marketing_with_consent_allowed(self, gate: ComplianceGate):
        decision = gate.decide("jane@example.com", MessageClass.MARKETING, consent=True)

        assert decision == ComplianceDecision.ok()


class TestRateLimiting:
    """Test the rate limit stage."""

    def test_fourth_send_rate_limited(self, gate: ComplianceGate):
        decisions = [
            gate.decide("jane@example.com", MessageClass.TRANSACTIONAL) for _ in range(4)
        ]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert decisions[-1].reason is DecisionReason.RATE_LIMITED
        assert decisions[-1].retryable is False

    def test_rate_limit_shared_across_classes(self, gate: ComplianceGate):
        gate.decide("jane@example.com", MessageClass.TRANSACTIONAL)
        gate.decide("jane@example.com", MessageClass.MARKETING, consent=True)
        gate.decide("jane@example.com", MessageClass.REMINDER, consent=True)

        decision = gate.decide("jane@example.com", MessageClass.MARKETING, consent=True)
        assert decision.reason is DecisionReason.RATE_LIMITED


class TestBusinessHours:
    """Test the business hours stage for reminders."""

    def test_reminder_inside_hours_allowed(self, gate: ComplianceGate):
        decision = gate.decide("jane@example.com", MessageClass.REMINDER, consent=True)

        assert decision.allowed is True

    def test_reminder_outside_hours_is_retryable(self, gate: ComplianceGate, clock: FrozenClock):
        clock.now = AFTER_HOURS_UTC

        decision = gate.decide("jane@example.com", MessageClass.REMINDER, consent=True)

        assert decision.allowed is False
        assert decision.reason is DecisionReason.OUTSIDE_BUSINESS_HOURS
        assert decision.retryable is True
        # 08:00 Jerusalem the next morning
        assert decision.retry_at == utc_datetime(2025, 1, 16, 6, 0, 0)

    @pytest.mark.parametrize("message_class", [MessageClass.TRANSACTIONAL, MessageClass.MARKETING])
    def test_other_classes_ignore_hours(self, gate: ComplianceGate, message_class: MessageClass):
        decision = gate.decide("jane@example.com", message_class, consent=True, now=AFTER_HOURS_UTC)

        assert decision.allowed is True

    def test_rate_limit_checked_before_hours(self, gate: ComplianceGate):
        for _ in range(3):
            gate.decide("jane@example.com", MessageClass.TRANSACTIONAL, now=AFTER_HOURS_UTC)

        decision = gate.decide("jane@example.com", MessageClass.REMINDER, consent=True, now=AFTER_HOURS_UTC)
        assert decision.reason is DecisionReason.RATE_LIMITED


class TestInputValidation:
    """Test rejection of bad requests."""

    def test_empty_recipient(self, gate: ComplianceGate):
        with pytest.raises(InvalidRecipientError):
            gate.decide("", MessageClass.TRANSACTIONAL)

    def test_unknown_message_class(self, gate: ComplianceGate):
        with pytest.raises(ValidationError) as exc_info:
            gate.decide("jane@example.com", "newsletter")  # type: ignore[arg-type]
        assert exc_info.value.error_code == "invalid_message_class"

    def test_message_class_accepts_plain_string(self, gate: ComplianceGate):
        decision = gate.decide("jane@example.com", "transactional")  # type: ignore[arg-type]

        assert decision.allowed is True


class TestDecisionMetrics:
    """Test decisions are counted by class and reason."""

    def test_decisions_recorded(self, rate_limiter: RateLimiter, business_hours, clock: FrozenClock):
        metrics = MetricsCollector()
        gate = ComplianceGate(rate_limiter, business_hours, clock=clock, metrics=metrics)

        gate.decide("jane@example.com", MessageClass.MARKETING, consent=False)
        gate.decide("jane@example.com", MessageClass.TRANSACTIONAL)

        sample = metrics.registry.get_sample_value
        assert sample(
            "compliance_decisions_total",
            {"message_class": "marketing", "reason": "CONSENT_DENIED"},
        ) == 1
        assert sample(
            "compliance_decisions_total",
            {"message_class": "transactional", "reason": "OK"},
        ) == 1
