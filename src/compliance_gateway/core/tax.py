"""
Reverse tax calculation and invoice identifiers.

The customer-facing final price is known; subtotal, VAT and the card
processing fee are derived from it. Every output field is computed from
unrounded intermediates and rounded once, at the end, half-up to cents.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Optional, Protocol, Sequence

import structlog

from .clock import Clock, ensure_utc, to_epoch_ms, utc_now
from .exceptions import InvalidAmountError, InvalidRecipientError, ValidationError
from .masking import mask_email

if TYPE_CHECKING:
    from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)

DEFAULT_VAT_RATE = Decimal("0.18")
DEFAULT_PROCESSING_FEE_RATE = Decimal("0.0175")

CENTS = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")

INVOICE_PREFIX = "PW"
BASE36_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
INVOICE_SUFFIX_LENGTH = 4


class RandomSource(Protocol):
    def choice(self, seq: Sequence[str]) -> str: ...


def to_decimal(value: Any) -> Decimal:
    """Convert ints, strings, floats or Decimals to a finite Decimal."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() keeps 55.1 as 55.1 instead of its binary expansion
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidAmountError("Amount is not a number", amount=value)
    if not result.is_finite():
        raise InvalidAmountError("Amount is not a finite number", amount=value)
    return result


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _check_rate(name: str, value: Decimal) -> Decimal:
    if value < 0 or value >= 1:
        raise ValidationError(
            f"{name} must be in [0, 1), got {value}",
            error_code="invalid_rate",
            details={"field": name, "value": str(value)},
        )
    return value


@dataclass(frozen=True)
class TaxBreakdown:
    """Cent-rounded split of a tax-inclusive price."""

    subtotal: Decimal
    vat_amount: Decimal
    processing_fee: Decimal
    total_amount: Decimal
    vat_rate: Decimal
    processing_fee_rate: Decimal

    @property
    def reconciliation_delta(self) -> Decimal:
        """Difference between the summed components and the total, in currency units."""
        return round_money(self.subtotal + self.vat_amount + self.processing_fee) - self.total_amount


@dataclass(frozen=True)
class InvoiceIssuer:
    """Legal details of the business printed on every invoice."""

    company_name: str
    company_tax_id: str
    company_address: str
    support_email: str


@dataclass(frozen=True)
class TaxInvoice:
    """A single-line tax invoice ready to be rendered by the caller."""

    invoice_number: str
    issued_at: datetime
    customer_email: str
    customer_name: Optional[str]
    issuer: InvoiceIssuer
    package_name: str
    quantity: int
    unit_price: Decimal
    breakdown: TaxBreakdown
    payment_method: str
    transaction_id: Optional[str] = None
    transaction_reference: Optional[str] = None
    is_gift_card: bool = False
    recipient_email: Optional[str] = None


class TaxCalculationEngine:
    """
    Derives subtotal/VAT/fee breakdowns and mints invoice numbers.

    Pure apart from invoice numbering, which reads the clock and a random
    source. Both can be injected.
    """

    def __init__(
        self,
        vat_rate: Decimal = DEFAULT_VAT_RATE,
        processing_fee_rate: Decimal = DEFAULT_PROCESSING_FEE_RATE,
        issuer: Optional[InvoiceIssuer] = None,
        clock: Clock = utc_now,
        random_source: Optional[RandomSource] = None,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.vat_rate = _check_rate("vat_rate", to_decimal(vat_rate))
        self.processing_fee_rate = _check_rate("processing_fee_rate", to_decimal(processing_fee_rate))
        self.issuer = issuer
        self.clock = clock
        self.random_source: RandomSource = random_source or secrets.SystemRandom()
        self.metrics = metrics

    def compute_from_final_price(
        self,
        final_price: Any,
        include_processing_fee: bool,
        vat_rate: Optional[Any] = None,
        fee_rate: Optional[Any] = None,
    ) -> TaxBreakdown:
        """
        Split ``final_price`` into subtotal, VAT and processing fee.

        total = final_price
        fee = total * fee_rate (0 when the fee is not included)
        subtotal = (total - fee) / (1 + vat_rate)
        vat = subtotal * vat_rate
        """
        total = to_decimal(final_price)
        if total <= 0:
            raise InvalidAmountError(amount=final_price)

        vat_rate_used = _check_rate("vat_rate", to_decimal(vat_rate)) if vat_rate is not None else self.vat_rate
        fee_rate_used = (
            _check_rate("fee_rate", to_decimal(fee_rate)) if fee_rate is not None else self.processing_fee_rate
        )
        if not include_processing_fee:
            fee_rate_used = Decimal("0")

        processing_fee = total * fee_rate_used
        amount_after_fee = total - processing_fee
        subtotal = amount_after_fee / (1 + vat_rate_used)
        vat_amount = subtotal * vat_rate_used

        return TaxBreakdown(
            subtotal=round_money(subtotal),
            vat_amount=round_money(vat_amount),
            processing_fee=round_money(processing_fee),
            total_amount=round_money(total),
            vat_rate=vat_rate_used.quantize(RATE_PLACES, rounding=ROUND_HALF_UP),
            processing_fee_rate=fee_rate_used.quantize(RATE_PLACES, rounding=ROUND_HALF_UP),
        )

    def next_invoice_number(
        self,
        now: Optional[datetime] = None,
        random_source: Optional[RandomSource] = None,
    ) -> str:
        """
        ``PW`` + year + epoch milliseconds + 4 base36 characters.

        Uniqueness is probabilistic: millisecond resolution plus a random suffix,
        no sequence counter.
        """
        now = ensure_utc(now or self.clock())
        source = random_source or self.random_source
        suffix = "".join(source.choice(BASE36_ALPHABET) for _ in range(INVOICE_SUFFIX_LENGTH))
        return f"{INVOICE_PREFIX}{now.year:04d}{to_epoch_ms(now)}{suffix}"

    def create_tax_invoice(
        self,
        customer_email: str,
        package_name: str,
        final_price: Any,
        include_processing_fee: bool = True,
        customer_name: Optional[str] = None,
        payment_method: str = "card",
        transaction_id: Optional[str] = None,
        transaction_reference: Optional[str] = None,
        is_gift_card: bool = False,
        recipient_email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TaxInvoice:
        """Assemble a tax invoice for one purchased package."""
        if not customer_email:
            raise InvalidRecipientError("Invoice customer email must not be empty")
        if self.issuer is None:
            raise ValueError("An invoice issuer must be configured to create invoices")

        breakdown = self.compute_from_final_price(final_price, include_processing_fee)
        issued_at = ensure_utc(now or self.clock())
        invoice = TaxInvoice(
            invoice_number=self.next_invoice_number(issued_at),
            issued_at=issued_at,
            customer_email=customer_email,
            customer_name=customer_name,
            issuer=self.issuer,
            package_name=package_name,
            quantity=1,
            unit_price=breakdown.subtotal,
            breakdown=breakdown,
            payment_method=payment_method,
            transaction_id=transaction_id,
            transaction_reference=transaction_reference,
            is_gift_card=is_gift_card,
            recipient_email=recipient_email,
        )

        logger.info(
            "Tax invoice created",
            invoice_number=invoice.invoice_number,
            customer=mask_email(customer_email),
            total_amount=str(breakdown.total_amount),
        )
        if self.metrics:
            self.metrics.record_invoice_issued()

        return invoice
