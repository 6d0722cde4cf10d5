"""
Intake Tokens

Signed capability tokens for anonymous patient intake links.

A token grants "submit intake data for organization X" without any server
side lookup:

    token := base64url(JSON(payload)) "." base64url(HMAC-SHA256(secret, payload segment))

Two variants exist: ``expiring`` links (24 hours, shared by email/SMS) and
``tablet`` links (no deadline, bound to a front-desk device).
"""

import base64
import binascii
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from app.core.exceptions import (
    ConfigurationError,
    ExpiredTokenError,
    IntakeTokenError,
    InvalidSignatureError,
    MalformedTokenError,
)


IntakeTokenType = Literal["expiring", "tablet"]

EXPIRING_LINK_TTL_MS = 24 * 60 * 60 * 1000
SIGNATURE_LENGTH = hashlib.sha256().digest_size


class IntakeTokenPayload(BaseModel):
    """Claims carried by an intake token."""

    # Wire keys only: a signed payload spelling `org_id` is malformed.
    model_config = ConfigDict(frozen=True)

    # Field order is the wire order of the JSON keys.
    org_id: StrictStr = Field(..., alias="orgId", min_length=1)
    exp: Optional[StrictInt] = None  # ms since epoch, expiring tokens only
    type: IntakeTokenType

    @property
    def is_expiring(self) -> bool:
        return self.type == "expiring"


@dataclass(frozen=True)
class TokenVerification:
    """Outcome of :func:`verify_intake_token`."""

    ok: bool
    payload: Optional[IntakeTokenPayload] = None
    error: Optional[IntakeTokenError] = None

    @property
    def reason(self) -> str:
        return "ok" if self.ok else self.error.reason


# ============== Encoding Helpers ==============

def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_decode(segment: str) -> bytes:
    """
    Decode an unpadded base64url segment.

    Only the canonical encoding is accepted: padding, foreign characters and
    non-zero trailing bits are rejected, so every distinct segment maps to
    distinct bytes.
    """
    if "=" in segment or len(segment) % 4 == 1:
        raise MalformedTokenError("segment is not unpadded base64url")
    try:
        raw = base64.b64decode(
            segment + "=" * (-len(segment) % 4),
            altchars=b"-_",
            validate=True,
        )
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError(f"segment is not base64url: {e}") from e
    if _b64url_encode(raw) != segment:
        raise MalformedTokenError("segment is not canonical base64url")
    return raw


def _sign(secret: str, payload_segment: str) -> bytes:
    return hmac.new(
        secret.encode("utf-8"),
        payload_segment.encode("utf-8"),
        hashlib.sha256,
    ).digest()


def _signature_matches(signature: bytes, expected: bytes) -> bool:
    # Length leaks nothing secret; content comparison must not short-circuit.
    if len(signature) != len(expected):
        return False
    return hmac.compare_digest(signature, expected)


def current_time_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _require_secret(secret: Optional[str]) -> str:
    if not secret:
        raise ConfigurationError("intake token secret is not configured")
    return secret


def _serialize(payload: IntakeTokenPayload) -> bytes:
    claims = payload.model_dump(by_alias=True, exclude_none=True)
    return json.dumps(claims, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _parse(raw: bytes) -> IntakeTokenPayload:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedTokenError("token payload is not UTF-8") from e
    try:
        return IntakeTokenPayload.model_validate_json(text)
    except ValidationError as e:
        raise MalformedTokenError(f"invalid token payload: {e.error_count()} error(s)") from e


# ============== Mint / Verify ==============

def mint_intake_token(
    payload: IntakeTokenPayload | Mapping[str, Any],
    secret: Optional[str],
) -> str:
    """
    Mint a signed intake token.

    Args:
        payload: Token claims, as a model or a mapping using wire keys.
        secret: Server-held HMAC secret.

    Returns:
        str: ``payloadSegment.signatureSegment``, URL-safe.

    Raises:
        ConfigurationError: If the secret is empty.
    """
    secret = _require_secret(secret)
    if not isinstance(payload, IntakeTokenPayload):
        payload = IntakeTokenPayload.model_validate(payload)

    payload_segment = _b64url_encode(_serialize(payload))
    signature_segment = _b64url_encode(_sign(secret, payload_segment))
    return f"{payload_segment}.{signature_segment}"


def decode_intake_token(
    token: str,
    secret: Optional[str],
    *,
    now_ms: Optional[int] = None,
    leeway_ms: int = 0,
    previous_secrets: Iterable[str] = (),
) -> IntakeTokenPayload:
    """
    Verify a token and return its claims, raising on any failure.

    Args:
        token: Untrusted token string.
        secret: Current HMAC secret.
        now_ms: Clock reading in ms since epoch (defaults to now).
        leeway_ms: Clock skew tolerance added to expiring deadlines.
        previous_secrets: Retired secrets still accepted during rotation.

    Returns:
        IntakeTokenPayload: The verified claims.

    Raises:
        ConfigurationError: Secret missing.
        MalformedTokenError: Wrong structure or payload shape.
        InvalidSignatureError: Signature mismatch under every accepted secret.
        ExpiredTokenError: Expiring token at or past its deadline.
    """
    secret = _require_secret(secret)

    parts = token.split(".") if isinstance(token, str) else []
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise MalformedTokenError("token must have exactly two segments")
    payload_segment, signature_segment = parts

    payload = _parse(_b64url_decode(payload_segment))
    signature = _b64url_decode(signature_segment)

    # Sign the received segment verbatim, never a re-serialization.
    candidates = [secret, *(s for s in previous_secrets if s)]
    if not any(
        _signature_matches(signature, _sign(candidate, payload_segment))
        for candidate in candidates
    ):
        if len(signature) != SIGNATURE_LENGTH:
            raise InvalidSignatureError("signature length mismatch")
        raise InvalidSignatureError("signature mismatch")

    if payload.is_expiring:
        if payload.exp is None:
            raise ExpiredTokenError("expiring token has no deadline")
        now = current_time_ms() if now_ms is None else now_ms
        if now >= payload.exp + leeway_ms:
            raise ExpiredTokenError("token deadline has passed")

    return payload


def verify_intake_token(
    token: str,
    secret: Optional[str],
    *,
    now_ms: Optional[int] = None,
    leeway_ms: int = 0,
    previous_secrets: Iterable[str] = (),
) -> TokenVerification:
    """
    Verify a token without raising for token problems.

    Same checks as :func:`decode_intake_token`; failures come back as a
    ``TokenVerification`` holding the typed error.
    """
    try:
        payload = decode_intake_token(
            token,
            secret,
            now_ms=now_ms,
            leeway_ms=leeway_ms,
            previous_secrets=previous_secrets,
        )
    except IntakeTokenError as e:
        return TokenVerification(ok=False, error=e)
    return TokenVerification(ok=True, payload=payload)


# ============== Links ==============

def _link(base_url: Optional[str], path: str) -> str:
    base = (base_url or "").rstrip("/")
    return f"{base}{path}"


def expiring_intake_link(
    org_id: str,
    secret: Optional[str],
    base_url: Optional[str] = None,
    *,
    now_ms: Optional[int] = None,
) -> str:
    """Build a 24-hour intake link: ``{base_url}/intake/{token}``."""
    now = current_time_ms() if now_ms is None else now_ms
    token = mint_intake_token(
        IntakeTokenPayload(orgId=org_id, exp=now + EXPIRING_LINK_TTL_MS, type="expiring"),
        secret,
    )
    return _link(base_url, f"/intake/{token}")


def tablet_intake_link(
    org_id: str,
    secret: Optional[str],
    base_url: Optional[str] = None,
) -> str:
    """Build a non-expiring tablet link: ``{base_url}/intake/tablet/{token}``."""
    token = mint_intake_token(IntakeTokenPayload(orgId=org_id, type="tablet"), secret)
    return _link(base_url, f"/intake/tablet/{token}")


def token_fingerprint(token: str) -> str:
    """Stable SHA-256 identifier of a token, safe to log and to store."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
