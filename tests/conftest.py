"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Generator

import pytest
from fastapi.testclient import TestClient

from compliance_gateway.config import (
    BusinessHoursSettings,
    RateLimitSettings,
    SecuritySettings,
    Settings,
    TaxSettings,
    UnsubscribeSettings,
)
from compliance_gateway.core.business_hours import BusinessHoursPolicy
from compliance_gateway.core.compliance import ComplianceGate
from compliance_gateway.core.rate_limit import RateLimiter
from compliance_gateway.core.services import GatewayServices, build_services
from compliance_gateway.core.tax import InvoiceIssuer, TaxCalculationEngine
from compliance_gateway.core.tokens import SecureTokenService
from compliance_gateway.main import create_app

TEST_SECRET = "test-signing-secret-0123456789abcdef"
VALID_API_KEY = "test_token_valid_123456789abc"
INACTIVE_API_KEY = "test_token_inactive_123456789"

# Wednesday, 12:00 in Jerusalem (UTC+2 in January)
BUSINESS_NOON_UTC = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
# Wednesday, 22:00 in Jerusalem
AFTER_HOURS_UTC = datetime(2025, 1, 15, 20, 0, 0, tzinfo=timezone.utc)


def utc_datetime(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(BUSINESS_NOON_UTC)


@pytest.fixture
def token_service(clock: FrozenClock) -> SecureTokenService:
    return SecureTokenService(secret=TEST_SECRET, clock=clock)


@pytest.fixture
def rate_limiter(clock: FrozenClock) -> RateLimiter:
    return RateLimiter(limit_per_hour=3, clock=clock)


@pytest.fixture
def business_hours() -> BusinessHoursPolicy:
    return BusinessHoursPolicy(zone="Asia/Jerusalem", start_hour=8, end_hour=20)


@pytest.fixture
def gate(rate_limiter: RateLimiter, business_hours: BusinessHoursPolicy, clock: FrozenClock) -> ComplianceGate:
    return ComplianceGate(rate_limiter=rate_limiter, business_hours=business_hours, clock=clock)


@pytest.fixture
def issuer() -> InvoiceIssuer:
    return InvoiceIssuer(
        company_name="Example Wash Ltd",
        company_tax_id="512345678",
        company_address="1 Harbour St, Haifa",
        support_email="support@example.com",
    )


@pytest.fixture
def tax_engine(issuer: InvoiceIssuer, clock: FrozenClock) -> TaxCalculationEngine:
    return TaxCalculationEngine(issuer=issuer, clock=clock)


@pytest.fixture
def test_config() -> Dict[str, Any]:
    """Test configuration data."""
    return {
        "security": {
            "signing_secret": TEST_SECRET,
            "api_keys": {
                VALID_API_KEY: {
                    "name": "billing-service",
                    "active": True,
                    "description": "Test service token"
                },
                INACTIVE_API_KEY: {
                    "name": "inactive-service",
                    "active": False,
                    "description": "Inactive test token"
                },
            },
        },
        "rate_limit": {"limit_per_hour": 3},
        "tax": {
            "company_name": "Example Wash Ltd",
            "company_tax_id": "512345678",
            "company_address": "1 Harbour St, Haifa",
            "support_email": "support@example.com",
        },
        "unsubscribe": {"base_url": "https://mail.example.com/unsubscribe"},
    }


@pytest.fixture
def settings(test_config: Dict[str, Any]) -> Settings:
    return Settings(
        environment="test",
        log_level="DEBUG",
        security=SecuritySettings(**test_config["security"]),
        rate_limit=RateLimitSettings(**test_config["rate_limit"]),
        business_hours=BusinessHoursSettings(zone="Asia/Jerusalem", start_hour=8, end_hour=20),
        tax=TaxSettings(vat_rate=Decimal("0.18"), processing_fee_rate=Decimal("0.0175"), **test_config["tax"]),
        unsubscribe=UnsubscribeSettings(**test_config["unsubscribe"]),
    )


@pytest.fixture
def services(settings: Settings, clock: FrozenClock) -> GatewayServices:
    return build_services(settings, clock=clock)


@pytest.fixture
def test_client(settings: Settings, clock: FrozenClock) -> Generator[TestClient, None, None]:
    """FastAPI test client with test configuration and a frozen clock."""
    app = create_app(settings, clock=clock)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return create_auth_headers(VALID_API_KEY)


def create_auth_headers(token: str) -> Dict[str, str]:
    """Helper to create Authorization headers for TestClient."""
    return {"Authorization": f"Bearer {token}"}
