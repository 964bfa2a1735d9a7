"""
Integration tests for tax breakdown and invoice endpoints.
"""

import re
from decimal import Decimal
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from compliance_gateway.config import Settings, TaxSettings
from compliance_gateway.main import create_app

from tests.conftest import FrozenClock

INVOICE_NUMBER_PATTERN = re.compile(r"^PW2025\d{13}[0-9A-Z]{4}$")


class TestTaxBreakdownEndpoint:
    """Test POST /v1/invoices/tax-breakdown."""

    def test_breakdown_with_fee(self, test_client: TestClient, auth_headers: Dict[str, str]):
        response = test_client.post(
            "/v1/invoices/tax-breakdown",
            json={"final_price": "55.00", "include_processing_fee": True},
            headers=auth_headers,
        )

        data = response.json()
        assert response.status_code == 200
        assert Decimal(data["subtotal"]) == Decimal("45.79")
        assert Decimal(data["vat_amount"]) == Decimal("8.24")
        assert Decimal(data["processing_fee"]) == Decimal("0.96")
        assert Decimal(data["total_amount"]) == Decimal("55.00")

    def test_breakdown_without_fee(self, test_client: TestClient, auth_headers: Dict[str, str]):
        response = test_client.post(
            "/v1/invoices/tax-breakdown",
            json={"final_price": 55, "include_processing_fee": False},
            headers=auth_headers,
        )

        data = response.json()
        assert Decimal(data["processing_fee"]) == Decimal("0")
        assert Decimal(data["processing_fee_rate"]) == Decimal("0")
        assert Decimal(data["subtotal"]) == Decimal("46.61")

    def test_non_positive_price(self, test_client: TestClient, auth_headers: Dict[str, str]):
        response = test_client.post(
            "/v1/invoices/tax-breakdown",
            json={"final_price": 0, "include_processing_fee": True},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_amount"

    def test_non_numeric_price(self, test_client: TestClient, auth_headers: Dict[str, str]):
        response = test_client.post(
            "/v1/invoices/tax-breakdown",
            json={"final_price": "fifty"},
            headers=auth_headers,
        )

        assert response.status_code == 422

    @pytest.mark.parametrize("override", [{"vat_rate": "1.5"}, {"vat_rate": "1"}, {"fee_rate": "-0.01"}])
    def test_out_of_range_rate_override(
        self, test_client: TestClient, auth_headers: Dict[str, str], override: Dict[str, Any]
    ):
        response = test_client.post(
            "/v1/invoices/tax-breakdown",
            json={"final_price": "55.00", "include_processing_fee": True, **override},
            headers=auth_headers,
        )

        data = response.json()
        assert response.status_code == 400
        assert data["error"] == "invalid_rate"
        assert data["details"]["field"] in {"vat_rate", "fee_rate"}

    def test_client_errors_logged_as_warning(self, test_client: TestClient, auth_headers: Dict[str, str]):
        with capture_logs() as entries:
            response = test_client.post(
                "/v1/invoices/tax-breakdown",
                json={"final_price": 0, "include_processing_fee": True},
                headers=auth_headers,
            )

        assert response.status_code == 400
        logged = [entry for entry in entries if entry["event"] == "Gateway exception occurred"]
        assert len(logged) == 1
        assert logged[0]["log_level"] == "warning"
        assert logged[0]["error_code"] == "invalid_amount"

    def test_requires_authentication(self, test_client: TestClient):
        response = test_client.post("/v1/invoices/tax-breakdown", json={"final_price": 10})

        assert response.status_code == 401


class TestInvoiceEndpoints:
    """Test invoice numbering and assembly."""

    def test_mint_invoice_number(self, test_client: TestClient, auth_headers: Dict[str, str]):
        response = test_client.post("/v1/invoices/numbers", headers=auth_headers)

        assert response.status_code == 201
        assert INVOICE_NUMBER_PATTERN.match(response.json()["invoice_number"])

    def test_create_invoice(self, test_client: TestClient, auth_headers: Dict[str, str]):
        response = test_client.post(
            "/v1/invoices",
            json={
                "customer_email": "jane@example.com",
                "customer_name": "Jane Doe",
                "package_name": "Premium Wash x5",
                "final_price": "55.00",
                "transaction_id": "txn_123",
            },
            headers=auth_headers,
        )

        data = response.json()
        assert response.status_code == 201
        assert INVOICE_NUMBER_PATTERN.match(data["invoice_number"])
        assert data["issuer"]["company_name"] == "Example Wash Ltd"
        assert data["quantity"] == 1
        assert Decimal(data["unit_price"]) == Decimal("45.79")
        assert Decimal(data["breakdown"]["total_amount"]) == Decimal("55.00")
        assert data["payment_method"] == "card"

    def test_create_invoice_without_issuer(
        self,
        settings: Settings,
        clock: FrozenClock,
        auth_headers: Dict[str, str],
    ):
        settings = settings.model_copy(update={"tax": TaxSettings(company_name="")})
        with TestClient(create_app(settings, clock=clock)) as client:
            response = client.post(
                "/v1/invoices",
                json={"customer_email": "jane@example.com", "package_name": "Wash", "final_price": 10},
                headers=auth_headers,
            )

        assert response.status_code == 500
        assert response.json()["error"] == "configuration_error"
