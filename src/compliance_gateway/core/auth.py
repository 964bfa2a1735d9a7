"""
API key authentication for internal callers.

The public unsubscribe endpoint is not authenticated; the signed token is
its credential.
"""

from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .exceptions import AuthenticationError
from .masking import mask_key

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)


async def authenticate_token(
    request: Request,
    token: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Authenticate bearer token against configured API keys.

    Validates the token exists in config and is active.
    """
    if not token or not token.credentials or not token.credentials.strip():
        raise AuthenticationError("Missing authentication token")

    token_value = token.credentials.strip()

    # Keys come from the settings the app was built with
    valid_keys = request.app.state.services.settings.security.api_keys

    if token_value not in valid_keys:
        logger.warning("Authentication failed: unknown token", token=mask_key(token_value))
        raise AuthenticationError("Invalid authentication token")

    key_info = valid_keys[token_value]
    if not key_info.get("active", False):
        logger.warning(
            "Authentication failed: inactive token",
            token=mask_key(token_value),
            key_name=key_info.get("name", "unknown")
        )
        raise AuthenticationError("Authentication token is inactive")

    logger.debug(
        "Token authenticated successfully",
        token=mask_key(token_value),
        key_name=key_info.get("name", "unknown")
    )

    return token_value
