"""
NGO Portal - Token Codec Tests

Run with: pytest tests/test_tokens.py -v
"""

import base64
import json
from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from ngo_portal.auth.errors import ConfigurationError, TokenVerificationError
from ngo_portal.auth.tokens import TokenCodec


SECRET = "unit-test-secret"
# Whole seconds keep float timestamps exact at the expiry boundary
NOW = datetime(2026, 3, 1, 12, 0, 0)
TTL = timedelta(hours=1)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(secret=SECRET, issuer="ngo-portal", audience="ngo-portal-clients")


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


# =============================================================================
# ISSUE / VERIFY
# =============================================================================

class TestTokenRoundTrip:

    def test_round_trip_keeps_claims(self, codec):
        """Verified payload holds the supplied claims plus registered ones."""
        token = codec.issue({"sub": "abc", "typ": "access", "ver": 1}, TTL, NOW)
        payload = codec.verify(token, NOW + timedelta(minutes=5))

        assert payload["sub"] == "abc"
        assert payload["typ"] == "access"
        assert payload["iss"] == "ngo-portal"
        assert payload["aud"] == "ngo-portal-clients"
        assert payload["exp"] - payload["iat"] == TTL.total_seconds()
        assert payload["jti"]

    def test_compact_form(self, codec):
        token = codec.issue({"sub": "abc"}, TTL, NOW)
        header = json.loads(_b64url_decode(token.split(".")[0]))

        assert token.count(".") == 2
        assert header["alg"] == "HS256"

    def test_tokens_issued_together_differ(self, codec):
        user_id = uuid4()

        first = codec.issue_access_token(user_id, TTL, NOW)
        second = codec.issue_access_token(user_id, TTL, NOW)

        assert first != second

    @pytest.mark.parametrize("ttl", [timedelta(0), timedelta(seconds=-1)])
    def test_non_positive_ttl_rejected(self, codec, ttl):
        with pytest.raises(ValueError):
            codec.issue({"sub": "abc"}, ttl, NOW)

    def test_reserved_claims_rejected(self, codec):
        with pytest.raises(ValueError):
            codec.issue({"sub": "abc", "exp": 0}, TTL, NOW)


# =============================================================================
# EXPIRY
# =============================================================================

class TestTokenExpiry:

    def test_valid_just_before_expiry(self, codec):
        token = codec.issue({"sub": "abc"}, TTL, NOW)

        assert codec.verify(token, NOW + TTL - timedelta(seconds=1))["sub"] == "abc"

    def test_expired_exactly_at_expiry(self, codec):
        """The exp instant itself is already expired."""
        token = codec.issue({"sub": "abc"}, TTL, NOW)

        with pytest.raises(TokenVerificationError) as exc:
            codec.verify(token, NOW + TTL)
        assert exc.value.reason == TokenVerificationError.EXPIRED

    def test_expired_after_expiry(self, codec):
        token = codec.issue({"sub": "abc"}, TTL, NOW)

        with pytest.raises(TokenVerificationError) as exc:
            codec.verify(token, NOW + TTL + timedelta(days=1))
        assert exc.value.reason == TokenVerificationError.EXPIRED

    def test_expiry_uses_supplied_clock_not_wall_clock(self, codec):
        """A token long expired by the wall clock is valid at the supplied time."""
        issued = datetime(2001, 1, 1, 9, 0, 0)
        token = codec.issue({"sub": "abc"}, TTL, issued)

        assert codec.verify(token, issued + timedelta(minutes=5))["sub"] == "abc"
        claims = codec.verify_access_token(
            codec.issue_access_token(uuid4(), TTL, issued), issued + timedelta(minutes=5),
        )
        assert claims.typ == "access"

    def test_supplied_clock_expiry_reason(self, codec):
        issued = datetime(2001, 1, 1, 9, 0, 0)
        token = codec.issue({"sub": "abc"}, TTL, issued)

        with pytest.raises(TokenVerificationError) as exc:
            codec.verify(token, issued + TTL)
        assert exc.value.reason == TokenVerificationError.EXPIRED


# =============================================================================
# TAMPERING AND MALFORMED INPUT
# =============================================================================

class TestTokenRejection:

    @pytest.mark.parametrize("token", ["", "garbage", "a.b", "a.b.c.d", "!!!.???.###"])
    def test_malformed_tokens(self, codec, token):
        with pytest.raises(TokenVerificationError) as exc:
            codec.verify(token, NOW)
        assert exc.value.reason == TokenVerificationError.FORMAT

    def test_tampered_payload(self, codec):
        token = codec.issue({"sub": "abc", "typ": "access", "ver": 1}, TTL, NOW)
        header, payload, signature = token.split(".")
        claims = json.loads(_b64url_decode(payload))
        claims["sub"] = "someone-else"
        forged = ".".join([header, _b64url(json.dumps(claims).encode()), signature])

        with pytest.raises(TokenVerificationError) as exc:
            codec.verify(forged, NOW)
        assert exc.value.reason == TokenVerificationError.SIGNATURE

    def test_wrong_secret(self, codec):
        other = TokenCodec(secret="another-secret", issuer="ngo-portal", audience="ngo-portal-clients")
        token = other.issue({"sub": "abc"}, TTL, NOW)

        with pytest.raises(TokenVerificationError) as exc:
            codec.verify(token, NOW)
        assert exc.value.reason == TokenVerificationError.SIGNATURE

    def test_signature_checked_before_expiry(self, codec):
        other = TokenCodec(secret="another-secret", issuer="ngo-portal", audience="ngo-portal-clients")
        token = other.issue({"sub": "abc"}, TTL, NOW)

        with pytest.raises(TokenVerificationError) as exc:
            codec.verify(token, NOW + timedelta(days=30))
        assert exc.value.reason == TokenVerificationError.SIGNATURE

    def test_wrong_issuer(self, codec):
        other = TokenCodec(secret=SECRET, issuer="someone-else", audience="ngo-portal-clients")
        token = other.issue({"sub": "abc"}, TTL, NOW)

        with pytest.raises(TokenVerificationError) as exc:
            codec.verify(token, NOW)
        assert exc.value.reason == TokenVerificationError.CLAIMS

    def test_wrong_audience(self, codec):
        other = TokenCodec(secret=SECRET, issuer="ngo-portal", audience="another-app")
        token = other.issue({"sub": "abc"}, TTL, NOW)

        with pytest.raises(TokenVerificationError) as exc:
            codec.verify(token, NOW)
        assert exc.value.reason == TokenVerificationError.CLAIMS


# =============================================================================
# TOKEN CLASSES
# =============================================================================

class TestTokenClasses:

    def test_access_token_claims(self, codec):
        user_id = uuid4()
        token = codec.issue_access_token(user_id, TTL, NOW)

        claims = codec.verify_access_token(token, NOW)

        assert claims.sub == str(user_id)
        assert claims.typ == "access"
        assert claims.ver == 1

    def test_refresh_token_claims(self, codec):
        user_id = uuid4()
        token = codec.issue_refresh_token(user_id, TTL, NOW)

        assert codec.verify_refresh_token(token, NOW).typ == "refresh"

    def test_refresh_token_rejected_as_access(self, codec):
        token = codec.issue_refresh_token(uuid4(), TTL, NOW)

        with pytest.raises(TokenVerificationError) as exc:
            codec.verify_access_token(token, NOW)
        assert exc.value.reason == TokenVerificationError.CLAIMS

    def test_access_token_rejected_as_refresh(self, codec):
        token = codec.issue_access_token(uuid4(), TTL, NOW)

        with pytest.raises(TokenVerificationError):
            codec.verify_refresh_token(token, NOW)

    def test_unknown_claims_rejected(self, codec):
        """A validly signed token with an extra claim does not match either class."""
        token = codec.issue({"sub": "abc", "typ": "access", "ver": 1, "role": "admin"}, TTL, NOW)

        with pytest.raises(TokenVerificationError) as exc:
            codec.verify_access_token(token, NOW)
        assert exc.value.reason == TokenVerificationError.CLAIMS

    def test_missing_version_rejected(self, codec):
        token = codec.issue({"sub": "abc", "typ": "access"}, TTL, NOW)

        with pytest.raises(TokenVerificationError):
            codec.verify_access_token(token, NOW)


# =============================================================================
# CONFIGURATION
# =============================================================================

class TestCodecConfiguration:

    def test_empty_secret_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            TokenCodec(secret="", issuer="ngo-portal", audience="ngo-portal-clients")
