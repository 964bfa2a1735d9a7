"""
HMAC-signed, expiring tokens for revocation (unsubscribe) links.

Wire format: ``<base64url(payload JSON)>.<hex HMAC-SHA256 over the first segment>``.
Tokens are stateless: nothing is stored at issuance, and a captured token
stays valid until it expires unless a ``NonceLedger`` is configured.
"""

import base64
import binascii
import hashlib
import hmac
import json
import re
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

import structlog

from .clock import Clock, to_epoch_ms, utc_now
from .exceptions import (
    InvalidEmailFormatError,
    InvalidPayloadError,
    InvalidRecipientError,
    InvalidSignatureError,
    MalformedTokenError,
    TokenExpiredError,
    TokenReplayedError,
    TokenTooOldError,
    TokenVerificationError,
)
from .masking import mask_email

if TYPE_CHECKING:
    from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)

DEFAULT_TOKEN_TTL = timedelta(days=30)
DEFAULT_GRACE_PERIOD = timedelta(days=2)
NONCE_BYTES = 16

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def _ms(value: timedelta) -> int:
    return int(value.total_seconds() * 1000)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


@dataclass(frozen=True)
class TokenPayload:
    """Claims carried inside a signed token."""

    subject_email: str
    issued_at_ms: int
    expires_at_ms: int
    nonce: str
    customer_id: Optional[int] = None
    user_id: Optional[int] = None

    def to_wire(self) -> Dict[str, Any]:
        return {
            "email": self.subject_email,
            "customerId": self.customer_id,
            "userId": self.user_id,
            "timestamp": self.issued_at_ms,
            "expiresAt": self.expires_at_ms,
            "nonce": self.nonce,
        }

    @classmethod
    def from_wire(cls, data: Any) -> "TokenPayload":
        """Build a payload from decoded JSON, rejecting missing or mistyped claims."""
        if not isinstance(data, dict):
            raise InvalidPayloadError("Token payload is not an object")

        email = data.get("email")
        issued_at = data.get("timestamp")
        expires_at = data.get("expiresAt")

        if not isinstance(email, str) or not email:
            raise InvalidPayloadError("Token payload is missing the subject")
        if not _is_int(issued_at) or not _is_int(expires_at):
            raise InvalidPayloadError("Token payload is missing its timestamps")

        customer_id = data.get("customerId")
        user_id = data.get("userId")
        if customer_id is not None and not _is_int(customer_id):
            raise InvalidPayloadError("Token payload has a non-integer customerId")
        if user_id is not None and not _is_int(user_id):
            raise InvalidPayloadError("Token payload has a non-integer userId")

        nonce = data.get("nonce") or ""
        if not isinstance(nonce, str):
            raise InvalidPayloadError("Token payload has a non-string nonce")

        return cls(
            subject_email=email,
            issued_at_ms=issued_at,
            expires_at_ms=expires_at,
            nonce=nonce,
            customer_id=customer_id,
            user_id=user_id,
        )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class NonceLedger:
    """
    In-memory record of consumed token nonces.

    Optional: only wired in when revocation links must be single-use.
    Entries are kept until the owning token expires.
    """

    def __init__(self) -> None:
        self._consumed: Dict[str, int] = {}
        self._lock = threading.Lock()

    def consume(self, nonce: str, expires_at_ms: int, now_ms: int) -> bool:
        """Mark a nonce as used. Returns False if it was already used and is still live."""
        with self._lock:
            existing = self._consumed.get(nonce)
            if existing is not None and existing >= now_ms:
                return False
            self._consumed[nonce] = expires_at_ms
            return True

    def sweep(self, now_ms: int) -> int:
        """Drop nonces whose tokens have expired. Returns the number removed."""
        with self._lock:
            stale = [nonce for nonce, expires in self._consumed.items() if expires < now_ms]
            for nonce in stale:
                del self._consumed[nonce]
        return len(stale)

    def __len__(self) -> int:
        return len(self._consumed)


class SecureTokenService:
    """
    Issues and verifies signed, time-bounded tokens.

    The secret is fixed at construction and never logged. Verification checks,
    in order: shape, signature (constant time, before the payload is decoded),
    payload structure, expiry, absolute age, subject email format.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        clock: Clock = utc_now,
        nonce_ledger: Optional[NonceLedger] = None,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret.encode("utf-8")
        self.ttl = ttl
        self.grace_period = grace_period
        self.clock = clock
        self.nonce_ledger = nonce_ledger
        self.metrics = metrics

    def _sign(self, segment: str) -> str:
        return hmac.new(self._secret, segment.encode("ascii"), hashlib.sha256).hexdigest()

    def issue(
        self,
        subject_email: str,
        customer_id: Optional[int] = None,
        user_id: Optional[int] = None,
        ttl: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Issue a signed token for ``subject_email``.

        The email is not validated here beyond being non-empty; a malformed
        address is still signed and rejected at verification time.
        """
        token, _ = self.issue_with_payload(subject_email, customer_id, user_id, ttl, now)
        return token

    def issue_with_payload(
        self,
        subject_email: str,
        customer_id: Optional[int] = None,
        user_id: Optional[int] = None,
        ttl: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[str, TokenPayload]:
        """Like ``issue``, also returning the signed claims."""
        if not subject_email:
            raise InvalidRecipientError("Token subject must not be empty")

        issued_at_ms = to_epoch_ms(now or self.clock())
        lifetime = ttl if ttl is not None else self.ttl
        payload = TokenPayload(
            subject_email=subject_email,
            issued_at_ms=issued_at_ms,
            expires_at_ms=issued_at_ms + _ms(lifetime),
            nonce=secrets.token_hex(NONCE_BYTES),
            customer_id=customer_id,
            user_id=user_id,
        )

        serialized = json.dumps(payload.to_wire(), separators=(",", ":"))
        segment = _b64encode(serialized.encode("utf-8"))
        token = f"{segment}.{self._sign(segment)}"

        logger.info(
            "Issued signed token",
            subject=mask_email(subject_email),
            expires_at_ms=payload.expires_at_ms,
        )
        if self.metrics:
            self.metrics.record_token_issued()

        return token, payload

    def verify(self, token: str, now: Optional[datetime] = None) -> TokenPayload:
        """
        Verify ``token`` and return its payload.

        Raises a ``TokenVerificationError`` subclass naming the failed check.
        """
        try:
            payload = self._verify(token, now)
        except TokenVerificationError as e:
            logger.warning(
                "Token verification failed",
                reason=e.reason.value,
                error=str(e),
            )
            if self.metrics:
                self.metrics.record_token_verification(e.reason.value)
            raise

        if self.metrics:
            self.metrics.record_token_verification("ok")
        return payload

    def _verify(self, token: str, now: Optional[datetime]) -> TokenPayload:
        if not isinstance(token, str):
            raise MalformedTokenError("Token must be a string")

        parts = token.split(".")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise MalformedTokenError("Token must have exactly two non-empty segments")

        segment, received_signature = parts
        try:
            expected_signature = self._sign(segment)
        except UnicodeEncodeError:
            raise InvalidSignatureError("Token signature mismatch")

        if not hmac.compare_digest(
            expected_signature.encode("ascii"),
            received_signature.encode("utf-8"),
        ):
            raise InvalidSignatureError("Token signature mismatch")

        try:
            data = json.loads(_b64decode(segment).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError):
            raise InvalidPayloadError("Token payload could not be decoded")

        payload = TokenPayload.from_wire(data)

        now_ms = to_epoch_ms(now or self.clock())
        if now_ms > payload.expires_at_ms:
            raise TokenExpiredError("Token expired")

        age_ms = now_ms - payload.issued_at_ms
        if age_ms > _ms(self.ttl + self.grace_period):
            raise TokenTooOldError("Token too old")

        if not EMAIL_PATTERN.fullmatch(payload.subject_email):
            raise InvalidEmailFormatError("Token subject is not a valid email address")

        if self.nonce_ledger is not None and not self.nonce_ledger.consume(
            payload.nonce, payload.expires_at_ms, now_ms
        ):
            raise TokenReplayedError("Token already used")

        logger.info(
            "Verified signed token",
            subject=payload.subject_email,
            age_hours=age_ms // (60 * 60 * 1000),
        )
        return payload
