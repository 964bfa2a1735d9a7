"""
Tax breakdown and invoice models.

Amounts are decimals; non-positive prices are rejected by the tax engine
with an ``invalid_amount`` error rather than by schema validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..core.tax import TaxBreakdown, TaxInvoice


class TaxBreakdownRequest(BaseModel):
    final_price: Decimal = Field(description="Tax-inclusive price the customer pays")
    include_processing_fee: bool = Field(default=True, description="Whether a card processing fee is carved out")
    vat_rate: Optional[Decimal] = Field(default=None, description="Override of the configured VAT rate")
    fee_rate: Optional[Decimal] = Field(default=None, description="Override of the configured fee rate")


class TaxBreakdownResponse(BaseModel):
    subtotal: Decimal
    vat_amount: Decimal
    processing_fee: Decimal
    total_amount: Decimal
    vat_rate: Decimal
    processing_fee_rate: Decimal

    @classmethod
    def from_breakdown(cls, breakdown: TaxBreakdown) -> "TaxBreakdownResponse":
        return cls(
            subtotal=breakdown.subtotal,
            vat_amount=breakdown.vat_amount,
            processing_fee=breakdown.processing_fee,
            total_amount=breakdown.total_amount,
            vat_rate=breakdown.vat_rate,
            processing_fee_rate=breakdown.processing_fee_rate,
        )


class InvoiceRequest(BaseModel):
    """Request model for creating a tax invoice."""

    customer_email: str = Field(min_length=1, max_length=320)
    customer_name: Optional[str] = Field(default=None, max_length=200)
    package_name: str = Field(min_length=1, max_length=200, description="Purchased package or voucher")
    final_price: Decimal = Field(description="Tax-inclusive price the customer paid")
    include_processing_fee: bool = Field(default=True)
    payment_method: str = Field(default="card", max_length=64)
    transaction_id: Optional[str] = Field(default=None, max_length=128, description="Payment provider transaction id")
    transaction_reference: Optional[str] = Field(default=None, max_length=128, description="Payment provider reference")
    is_gift_card: bool = Field(default=False)
    recipient_email: Optional[str] = Field(default=None, max_length=320, description="Gift recipient, if any")


class InvoiceIssuerResponse(BaseModel):
    company_name: str
    company_tax_id: str
    company_address: str
    support_email: str


class InvoiceResponse(BaseModel):
    """A created tax invoice."""

    invoice_number: str
    issued_at: datetime
    customer_email: str
    customer_name: Optional[str] = None
    issuer: InvoiceIssuerResponse
    package_name: str
    quantity: int
    unit_price: Decimal
    breakdown: TaxBreakdownResponse
    payment_method: str
    transaction_id: Optional[str] = None
    transaction_reference: Optional[str] = None
    is_gift_card: bool
    recipient_email: Optional[str] = None

    @classmethod
    def from_invoice(cls, invoice: TaxInvoice) -> "InvoiceResponse":
        return cls(
            invoice_number=invoice.invoice_number,
            issued_at=invoice.issued_at,
            customer_email=invoice.customer_email,
            customer_name=invoice.customer_name,
            issuer=InvoiceIssuerResponse(
                company_name=invoice.issuer.company_name,
                company_tax_id=invoice.issuer.company_tax_id,
                company_address=invoice.issuer.company_address,
                support_email=invoice.issuer.support_email,
            ),
            package_name=invoice.package_name,
            quantity=invoice.quantity,
            unit_price=invoice.unit_price,
            breakdown=TaxBreakdownResponse.from_breakdown(invoice.breakdown),
            payment_method=invoice.payment_method,
            transaction_id=invoice.transaction_id,
            transaction_reference=invoice.transaction_reference,
            is_gift_card=invoice.is_gift_card,
            recipient_email=invoice.recipient_email,
        )


class InvoiceNumberResponse(BaseModel):
    invoice_number: str
