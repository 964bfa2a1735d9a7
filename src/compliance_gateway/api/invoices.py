"""
Tax breakdown and invoice endpoints.

- POST /v1/invoices/tax-breakdown: reverse VAT/fee split of a final price
- POST /v1/invoices/numbers: mint an invoice number
- POST /v1/invoices: assemble a full tax invoice
"""

import structlog
from fastapi import APIRouter, Depends

from ..core.auth import authenticate_token
from ..core.exceptions import ConfigurationError
from ..core.masking import mask_key
from ..core.services import GatewayServices
from ..models import (
    ErrorResponse,
    InvoiceNumberResponse,
    InvoiceRequest,
    InvoiceResponse,
    TaxBreakdownRequest,
    TaxBreakdownResponse,
)
from .deps import get_services

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/invoices/tax-breakdown",
    response_model=TaxBreakdownResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Non-positive or non-numeric price"},
        401: {"model": ErrorResponse, "description": "Unauthorized"},
    },
    summary="Split a final price into subtotal, VAT and processing fee",
)
async def tax_breakdown(
    request: TaxBreakdownRequest,
    services: GatewayServices = Depends(get_services),
    token: str = Depends(authenticate_token),
) -> TaxBreakdownResponse:
    breakdown = services.tax.compute_from_final_price(
        request.final_price,
        request.include_processing_fee,
        vat_rate=request.vat_rate,
        fee_rate=request.fee_rate,
    )
    return TaxBreakdownResponse.from_breakdown(breakdown)


@router.post(
    "/invoices/numbers",
    response_model=InvoiceNumberResponse,
    status_code=201,
    responses={401: {"model": ErrorResponse, "description": "Unauthorized"}},
    summary="Mint an invoice number",
)
async def mint_invoice_number(
    services: GatewayServices = Depends(get_services),
    token: str = Depends(authenticate_token),
) -> InvoiceNumberResponse:
    invoice_number = services.tax.next_invoice_number()
    logger.info("Invoice number minted", token=mask_key(token), invoice_number=invoice_number)
    return InvoiceNumberResponse(invoice_number=invoice_number)


@router.post(
    "/invoices",
    response_model=InvoiceResponse,
    status_code=201,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Invoice issuer not configured"},
    },
    summary="Create a tax invoice",
    description="""
    Assemble a single-line tax invoice from the price the customer paid.

    The line's unit price is the VAT-exclusive subtotal; issuer details come
    from the service configuration. Rendering and delivery are left to the
    caller.
    """,
)
async def create_invoice(
    request: InvoiceRequest,
    services: GatewayServices = Depends(get_services),
    token: str = Depends(authenticate_token),
) -> InvoiceResponse:
    if services.tax.issuer is None:
        raise ConfigurationError("Invoice issuer details are not configured")

    invoice = services.tax.create_tax_invoice(
        customer_email=request.customer_email,
        package_name=request.package_name,
        final_price=request.final_price,
        include_processing_fee=request.include_processing_fee,
        customer_name=request.customer_name,
        payment_method=request.payment_method,
        transaction_id=request.transaction_id,
        transaction_reference=request.transaction_reference,
        is_gift_card=request.is_gift_card,
        recipient_email=request.recipient_email,
    )
    return InvoiceResponse.from_invoice(invoice)
