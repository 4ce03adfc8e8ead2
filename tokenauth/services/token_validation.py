"""Per-request access token validation.

A bearer credential moves through

    RECEIVED -> PARSED -> SIGNATURE_CHECKED -> CLAIMS_CHECKED -> ACCEPTED

and any failing step ends in REJECTED with the kind of failure. The signature
is always checked before expiry, so an expired token is only reported as
EXPIRED once its signature has been proven genuine.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import structlog
from pydantic import ValidationError

from tokenauth.exceptions import (
    AccessTokenError,
    InvalidSignatureError,
    MalformedTokenError,
    TokenExpiredError,
)
from tokenauth.models.auth import AccessTokenClaims
from tokenauth.models.principal import AuthenticatedPrincipal
from tokenauth.services.token_service import TokenService, get_token_service

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "bearer "


class ValidationState(str, Enum):
    RECEIVED = "received"
    PARSED = "parsed"
    SIGNATURE_CHECKED = "signature_checked"
    CLAIMS_CHECKED = "claims_checked"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RejectionKind(str, Enum):
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


_REJECTION_ERRORS = {
    RejectionKind.MALFORMED: MalformedTokenError,
    RejectionKind.INVALID_SIGNATURE: InvalidSignatureError,
    RejectionKind.EXPIRED: TokenExpiredError,
}


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of evaluating one Authorization header.

    ``principal`` is set only when ``state`` is ACCEPTED; ``rejection`` only
    when it is REJECTED. Both are None for a request that carried no bearer
    token at all.
    """

    state: ValidationState
    principal: Optional[AuthenticatedPrincipal] = None
    rejection: Optional[RejectionKind] = None
    rejected_after: Optional[ValidationState] = None

    @property
    def authenticated(self) -> bool:
        return self.state is ValidationState.ACCEPTED

    def raise_for_rejection(self) -> None:
        if self.rejection is not None:
            raise _REJECTION_ERRORS[self.rejection]()


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the credential of a ``Bearer`` Authorization header, if any."""
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip()


class TokenValidationGate:
    """Turns an Authorization header into an authenticated principal."""

    def __init__(self, token_service: Optional[TokenService] = None):
        self.token_service = token_service or get_token_service()

    def evaluate(
        self, authorization: Optional[str], now: Optional[datetime] = None
    ) -> ValidationOutcome:
        """Run the validation state machine without raising."""
        token = extract_bearer_token(authorization)
        if token is None:
            return ValidationOutcome(state=ValidationState.RECEIVED)

        state = ValidationState.RECEIVED
        try:
            self.token_service.parse_unverified(token)
            state = ValidationState.PARSED

            payload = self.token_service.verify_signature(token)
            state = ValidationState.SIGNATURE_CHECKED

            try:
                claims = AccessTokenClaims.model_validate(payload)
            except ValidationError:
                raise MalformedTokenError()
            now = now or datetime.now(timezone.utc)
            if now >= claims.expires_at:
                raise TokenExpiredError()
            state = ValidationState.CLAIMS_CHECKED
        except AccessTokenError as e:
            kind = _kind_of(e)
            logger.info("access_token_rejected", reason=kind.value, rejected_after=state.value)
            return ValidationOutcome(
                state=ValidationState.REJECTED,
                rejection=kind,
                rejected_after=state,
            )

        return ValidationOutcome(
            state=ValidationState.ACCEPTED,
            principal=AuthenticatedPrincipal.from_claims(claims),
        )

    def validate(
        self, authorization: Optional[str], now: Optional[datetime] = None
    ) -> Optional[AuthenticatedPrincipal]:
        """Validate a header, returning None when no bearer token was sent.

        Raises:
            MalformedTokenError: Token structure or claims are invalid
            InvalidSignatureError: Signature does not verify
            TokenExpiredError: Token expiry is in the past
        """
        outcome = self.evaluate(authorization, now)
        outcome.raise_for_rejection()
        return outcome.principal


def _kind_of(error: AccessTokenError) -> RejectionKind:
    if isinstance(error, InvalidSignatureError):
        return RejectionKind.INVALID_SIGNATURE
    if isinstance(error, TokenExpiredError):
        return RejectionKind.EXPIRED
    return RejectionKind.MALFORMED
