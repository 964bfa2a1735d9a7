"""
Signed unsubscribe token endpoints.

- POST /v1/tokens/unsubscribe: issue a token for an outbound message (API key)
- GET /v1/unsubscribe?token=...: verify a token from a recipient's link (public)
"""

import structlog
from fastapi import APIRouter, Depends, Query

from ..core.auth import authenticate_token
from ..core.clock import from_epoch_ms
from ..core.masking import mask_email, mask_key
from ..core.services import GatewayServices
from ..models import (
    ErrorResponse,
    UnsubscribeTokenRequest,
    UnsubscribeTokenResponse,
    UnsubscribeVerification,
)
from .deps import get_services

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/tokens/unsubscribe",
    response_model=UnsubscribeTokenResponse,
    status_code=201,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        401: {"model": ErrorResponse, "description": "Unauthorized"},
    },
    summary="Issue an unsubscribe token",
)
async def issue_unsubscribe_token(
    request: UnsubscribeTokenRequest,
    services: GatewayServices = Depends(get_services),
    token: str = Depends(authenticate_token),
) -> UnsubscribeTokenResponse:
    """
    Issue a signed unsubscribe token and the link that carries it.

    The email is signed as given; its format is checked when the link is used.
    """
    logger.debug(
        "Unsubscribe token requested",
        token=mask_key(token),
        subject=mask_email(request.email),
    )

    signed, payload = services.tokens.issue_with_payload(
        subject_email=request.email,
        customer_id=request.customer_id,
        user_id=request.user_id,
    )

    return UnsubscribeTokenResponse(
        token=signed,
        unsubscribe_url=services.links.url_for(signed),
        list_unsubscribe_header=services.links.list_unsubscribe_header(signed),
        expires_at=from_epoch_ms(payload.expires_at_ms),
    )


@router.get(
    "/unsubscribe",
    response_model=UnsubscribeVerification,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired link"},
    },
    summary="Verify an unsubscribe link",
    description="""
    Verify the token carried by an unsubscribe link.

    Every failure (bad shape, forged signature, expired, malformed subject)
    produces the same `invalid_token` response; the specific reason is only
    logged server-side.
    """,
)
async def verify_unsubscribe_token(
    token: str = Query(..., description="Signed token from the unsubscribe link"),
    services: GatewayServices = Depends(get_services),
) -> UnsubscribeVerification:
    payload = services.tokens.verify(token)

    return UnsubscribeVerification(
        email=payload.subject_email,
        customer_id=payload.customer_id,
        user_id=payload.user_id,
        issued_at=from_epoch_ms(payload.issued_at_ms),
        expires_at=from_epoch_ms(payload.expires_at_ms),
    )
