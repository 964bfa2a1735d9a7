"""
Signed unsubscribe token models.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UnsubscribeTokenRequest(BaseModel):
    """Request model for issuing an unsubscribe token."""

    email: str = Field(..., min_length=1, max_length=320, description="Subject email address")
    customer_id: Optional[int] = Field(default=None, description="Correlation id, not authenticated")
    user_id: Optional[int] = Field(default=None, description="Correlation id, not authenticated")


class UnsubscribeTokenResponse(BaseModel):
    """Response model for an issued unsubscribe token."""

    token: str = Field(..., description="Signed token")
    unsubscribe_url: str = Field(..., description="Public link carrying the token")
    list_unsubscribe_header: str = Field(..., description="Value for the List-Unsubscribe mail header")
    expires_at: datetime = Field(..., description="Token expiry")


class UnsubscribeVerification(BaseModel):
    """Claims of a verified token."""

    email: str
    customer_id: Optional[int] = None
    user_id: Optional[int] = None
    issued_at: datetime
    expires_at: datetime
