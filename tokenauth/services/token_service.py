"""Access token signing and verification (JWT, HMAC)."""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Iterable, Optional

import jwt
import structlog

from tokenauth.config import get_settings
from tokenauth.exceptions import InvalidSignatureError, MalformedTokenError
from tokenauth.models.auth import AccessTokenClaims, ExtraClaims

logger = structlog.get_logger(__name__)

REQUIRED_CLAIMS = ["sub", "iat", "exp"]


class TokenService:
    """Stateless signer for access tokens.

    The key material is fixed at construction and never mutated, so a single
    instance is shared by all concurrent requests.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 15,
    ):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.access_token_ttl = timedelta(minutes=access_token_expire_minutes)

    @property
    def access_token_expire_seconds(self) -> int:
        return int(self.access_token_ttl.total_seconds())

    def build_claims(
        self,
        subject: str,
        roles: Iterable[str],
        extra_claims: Optional[ExtraClaims] = None,
        now: Optional[datetime] = None,
    ) -> AccessTokenClaims:
        """Assemble the claim set for a new access token."""
        now = now or datetime.now(timezone.utc)
        extra = extra_claims.model_dump() if extra_claims else {}
        return AccessTokenClaims(
            **extra,
            sub=subject,
            roles=list(roles),
            iat=int(now.timestamp()),
            exp=int((now + self.access_token_ttl).timestamp()),
        )

    def encode(self, claims: AccessTokenClaims) -> str:
        """Sign a claim set into a compact JWT."""
        return jwt.encode(claims.to_payload(), self._secret, algorithm=self.algorithm)

    def create_access_token(
        self,
        subject: str,
        roles: Iterable[str],
        extra_claims: Optional[ExtraClaims] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Create a signed JWT access token.

        Args:
            subject: Username placed in the ``sub`` claim
            roles: Authority strings placed in the ``roles`` claim
            extra_claims: Optional identity claims (userId, email, names)
            now: Issue instant, defaults to the current time

        Returns:
            Encoded JWT string
        """
        claims = self.build_claims(subject, roles, extra_claims, now)
        token = self.encode(claims)
        logger.debug(
            "access_token_created",
            username=subject,
            expires_minutes=self.access_token_expire_seconds // 60,
        )
        return token

    def parse_unverified(self, token: str) -> tuple[dict, dict]:
        """Split a token into its header and payload without trusting either.

        Raises:
            MalformedTokenError: Wrong segment count or undecodable segments
        """
        if not token or token.count(".") != 2:
            raise MalformedTokenError()
        try:
            header = jwt.get_unverified_header(token)
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            raise MalformedTokenError()
        if not isinstance(payload, dict):
            raise MalformedTokenError()
        return header, payload

    def verify_signature(self, token: str) -> dict:
        """Check the signature and return the payload. Expiry is not checked here.

        Raises:
            InvalidSignatureError: Signature mismatch or a disallowed algorithm
            MalformedTokenError: Undecodable token or required claims missing
        """
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError):
            raise InvalidSignatureError()
        except jwt.InvalidTokenError:
            raise MalformedTokenError()


@lru_cache
def get_token_service() -> TokenService:
    """Build the process-wide signer from settings, once."""
    settings = get_settings()
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        access_token_expire_minutes=settings.access_token_expire_minutes,
    )
