"""
Compliance decision endpoint.

Main endpoint: POST /v1/compliance/decide
"""

import structlog
from fastapi import APIRouter, Depends

from ..core.auth import authenticate_token
from ..core.masking import mask_email, mask_key
from ..core.services import GatewayServices
from ..models import DecisionRequest, DecisionResponse, ErrorResponse
from .deps import get_services

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/compliance/decide",
    response_model=DecisionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        401: {"model": ErrorResponse, "description": "Unauthorized"},
    },
    summary="Decide whether a message may be sent",
    description="""
    Evaluate one outbound message against the compliance rules.

    **Checks, in order:**
    1. Consent (transactional messages always pass; marketing and reminder
       messages need the caller-resolved opt-in)
    2. Per-recipient hourly send limit
    3. Business hours (reminder messages only)

    Denials are returned with `allowed: false` and a reason; they are not
    errors. `OUTSIDE_BUSINESS_HOURS` is retryable: reschedule the message
    for `retry_at`.
    """,
)
async def decide(
    request: DecisionRequest,
    services: GatewayServices = Depends(get_services),
    token: str = Depends(authenticate_token),
) -> DecisionResponse:
    logger.debug(
        "Compliance decision requested",
        token=mask_key(token),
        recipient=mask_email(request.recipient),
        message_class=request.message_class.value,
    )

    decision = services.compliance.decide(
        recipient=request.recipient,
        message_class=request.message_class,
        consent=request.consent,
    )
    return DecisionResponse.from_decision(decision)
