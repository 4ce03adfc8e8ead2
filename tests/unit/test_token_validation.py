"""Unit tests for the access token validation gate."""

import base64
import json
import os
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest

from tokenauth.exceptions import InvalidSignatureError, MalformedTokenError, TokenExpiredError
from tokenauth.models.auth import ExtraClaims
from tokenauth.services.token_service import TokenService
from tokenauth.services.token_validation import (
    RejectionKind,
    TokenValidationGate,
    ValidationState,
    extract_bearer_token,
)

TEST_JWT_SECRET = os.environ["JWT_SECRET"]
NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _unb64(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _flip_signature_bit(token: str) -> str:
    """Flip one bit of the decoded signature, so the change survives re-encoding."""
    header, payload, signature = token.split(".")
    raw = bytearray(_unb64(signature))
    raw[0] ^= 0x01
    return f"{header}.{payload}.{_b64(bytes(raw))}"


def _replace_payload(token: str, **changes) -> str:
    """Edit claims while keeping the original signature."""
    header, payload, signature = token.split(".")
    claims = json.loads(_unb64(payload))
    claims.update(changes)
    return f"{header}.{_b64(json.dumps(claims).encode())}.{signature}"


def _bearer(token: str) -> str:
    return f"Bearer {token}"


@pytest.fixture
def gate(token_service):
    return TokenValidationGate(token_service)


# ---------------------------------------------------------------------------
# Header extraction
# ---------------------------------------------------------------------------

class TestExtractBearerToken:
    def test_extracts_credential(self):
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        assert extract_bearer_token("bearer abc") == "abc"

    @pytest.mark.parametrize("header", [None, "", "Basic dXNlcjpwdw==", "Bearer"])
    def test_no_bearer_credential(self, header):
        assert extract_bearer_token(header) is None


# ---------------------------------------------------------------------------
# Accepted tokens
# ---------------------------------------------------------------------------

class TestAcceptedTokens:
    """A freshly issued token round-trips to the same identity."""

    def test_round_trip(self, gate, token_service):
        user_id = uuid4()
        token = token_service.create_access_token(
            "alice",
            ["ROLE_USER", "ROLE_MODERATOR"],
            ExtraClaims(user_id=user_id, email="alice@example.com"),
            now=NOW,
        )

        outcome = gate.evaluate(_bearer(token), now=NOW + timedelta(minutes=1))

        assert outcome.state is ValidationState.ACCEPTED
        assert outcome.authenticated
        assert outcome.rejection is None
        principal = outcome.principal
        assert principal.username == "alice"
        assert principal.roles == frozenset({"ROLE_USER", "ROLE_MODERATOR"})
        assert principal.user_id == user_id
        assert principal.email == "alice@example.com"
        assert principal.issued_at == NOW
        assert principal.expires_at == NOW + timedelta(minutes=15)

    def test_validate_returns_principal(self, gate, token_service):
        token = token_service.create_access_token("alice", ["ROLE_USER"])
        principal = gate.validate(_bearer(token))
        assert principal.username == "alice"

    def test_last_second_before_expiry_accepted(self, gate, token_service):
        token = token_service.create_access_token("alice", ["ROLE_USER"], now=NOW)
        outcome = gate.evaluate(_bearer(token), now=NOW + timedelta(minutes=15, seconds=-1))
        assert outcome.authenticated


# ---------------------------------------------------------------------------
# Missing credentials
# ---------------------------------------------------------------------------

class TestAnonymousRequests:
    def test_no_header_is_anonymous(self, gate):
        outcome = gate.evaluate(None)
        assert outcome.state is ValidationState.RECEIVED
        assert outcome.principal is None
        assert outcome.rejection is None
        assert gate.validate(None) is None

    def test_other_scheme_is_anonymous(self, gate):
        assert gate.validate("Basic dXNlcjpwdw==") is None


# ---------------------------------------------------------------------------
# Rejected tokens
# ---------------------------------------------------------------------------

class TestRejectedTokens:
    """Each rejection reports its kind and the last state reached."""

    def test_expired(self, gate, token_service):
        token = token_service.create_access_token("alice", ["ROLE_USER"], now=NOW)

        outcome = gate.evaluate(_bearer(token), now=NOW + timedelta(minutes=15))

        assert outcome.state is ValidationState.REJECTED
        assert outcome.rejection is RejectionKind.EXPIRED
        assert outcome.rejected_after is ValidationState.SIGNATURE_CHECKED
        assert outcome.principal is None

    def test_expired_raises(self, gate, token_service):
        token = token_service.create_access_token(
            "alice", ["ROLE_USER"], now=datetime.now(timezone.utc) - timedelta(hours=1)
        )
        with pytest.raises(TokenExpiredError):
            gate.validate(_bearer(token))

    def test_tampered_signature(self, gate, token_service):
        token = token_service.create_access_token("alice", ["ROLE_USER"], now=NOW)

        outcome = gate.evaluate(_bearer(_flip_signature_bit(token)), now=NOW)

        assert outcome.rejection is RejectionKind.INVALID_SIGNATURE
        assert outcome.rejected_after is ValidationState.PARSED

    def test_escalated_roles_rejected(self, gate, token_service):
        token = token_service.create_access_token("alice", ["ROLE_USER"], now=NOW)
        forged = _replace_payload(token, roles=["ROLE_USER", "ROLE_ADMIN"])

        with pytest.raises(InvalidSignatureError):
            gate.validate(_bearer(forged), now=NOW)

    def test_signature_checked_before_expiry(self, gate, token_service):
        """A forged token that is also expired is reported as forged."""
        token = token_service.create_access_token("alice", ["ROLE_USER"], now=NOW)

        outcome = gate.evaluate(
            _bearer(_flip_signature_bit(token)), now=NOW + timedelta(days=1)
        )

        assert outcome.rejection is RejectionKind.INVALID_SIGNATURE

    def test_wrong_key(self, gate):
        other = TokenService(secret="another-secret-key-of-sufficient-length-xyz")
        token = other.create_access_token("alice", ["ROLE_ADMIN"])
        assert gate.evaluate(_bearer(token)).rejection is RejectionKind.INVALID_SIGNATURE

    def test_alg_none_rejected(self, gate):
        header = _b64(json.dumps({"alg": "none", "typ": "JWT"}).encode())
        iat = int(datetime.now(timezone.utc).timestamp())
        payload = _b64(
            json.dumps({"sub": "mallory", "roles": ["ROLE_ADMIN"], "iat": iat, "exp": iat + 900}).encode()
        )

        outcome = gate.evaluate(_bearer(f"{header}.{payload}."))

        assert outcome.rejection is RejectionKind.INVALID_SIGNATURE

    @pytest.mark.parametrize("token", ["garbage", "a.b", "abc.def.ghi", "a.b.c.d"])
    def test_malformed(self, gate, token):
        outcome = gate.evaluate(_bearer(token))
        assert outcome.rejection is RejectionKind.MALFORMED
        assert outcome.rejected_after is ValidationState.RECEIVED

    def test_malformed_raises(self, gate):
        with pytest.raises(MalformedTokenError):
            gate.validate(_bearer("garbage"))

    def test_signed_token_missing_roles_is_malformed(self, gate):
        iat = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {"sub": "alice", "iat": iat, "exp": iat + 900}, TEST_JWT_SECRET, algorithm="HS256"
        )

        outcome = gate.evaluate(_bearer(token))

        assert outcome.rejection is RejectionKind.MALFORMED
        assert outcome.rejected_after is ValidationState.SIGNATURE_CHECKED
