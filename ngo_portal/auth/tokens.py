"""
NGO Portal - Token Management

Signed, expiring tokens in compact JWS form (header.payload.signature),
HMAC-SHA256 over "<encodedHeader>.<encodedPayload>".

Two token classes share the codec:
- access:  {sub, typ="access"},  24 hours
- refresh: {sub, typ="refresh"}, 7 days

Each class has a closed claim schema. A token of one class is never
accepted where the other is required.

Every token also carries iat, exp, iss, aud and a random jti, so two
tokens issued in the same instant never collide.
"""

import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Literal, Optional
from uuid import UUID

from jose import jwt, jws, JWTError
from jose.exceptions import JWSError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ngo_portal.auth.errors import ConfigurationError, TokenVerificationError
from ngo_portal.config import get_settings


CLAIMS_VERSION = 1
RESERVED_CLAIMS = ("iat", "exp", "iss", "aud", "jti")


class _TokenClaims(BaseModel):
    """Registered claims shared by every token class."""
    model_config = ConfigDict(extra="forbid")

    sub: str = Field(..., description="User ID")
    ver: Literal[1] = Field(..., description="Claim schema version")
    iat: float = Field(..., description="Issued at (epoch seconds)")
    exp: float = Field(..., description="Expiration (epoch seconds)")
    iss: str
    aud: str
    jti: str = Field(..., description="Token ID")


class AccessTokenClaims(_TokenClaims):
    typ: Literal["access"]


class RefreshTokenClaims(_TokenClaims):
    typ: Literal["refresh"]


def _timestamp(moment: datetime) -> float:
    """Epoch seconds for a naive-UTC or aware datetime."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


class TokenCodec:
    """
    Issues and verifies signed tokens with fixed issuer and audience.

    Args:
        secret: HMAC signing key; empty is a configuration error
        issuer: Expected iss claim
        audience: Expected aud claim
        algorithm: JWS algorithm (HS256)
    """

    def __init__(
        self,
        secret: str,
        issuer: str,
        audience: str,
        algorithm: str = "HS256",
    ):
        if not secret:
            raise ConfigurationError("SECRET_KEY is not configured; cannot sign tokens")
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.algorithm = algorithm

    def issue(
        self,
        claims: Dict[str, Any],
        ttl: timedelta,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Sign a token carrying the given claims.

        Args:
            claims: Application claims (must not set reserved claims)
            ttl: Lifetime; must be positive
            now: Issue time, defaults to current UTC

        Returns:
            Compact token string
        """
        if ttl <= timedelta(0):
            raise ValueError("Token ttl must be positive")
        clash = [name for name in RESERVED_CLAIMS if name in claims]
        if clash:
            raise ValueError(f"Reserved claims cannot be supplied: {clash}")

        issued_at = _timestamp(now or datetime.utcnow())
        payload = {
            **claims,
            "iat": issued_at,
            "exp": issued_at + ttl.total_seconds(),
            "iss": self.issuer,
            "aud": self.audience,
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Verify a token and return its payload.

        Checks, in order: three segments, decodable header and payload,
        signature, expiry (the exp instant itself is expired), issuer and
        audience.

        Raises:
            TokenVerificationError: reason is format, signature, expired or claims
        """
        if not isinstance(token, str) or token.count(".") != 2:
            raise TokenVerificationError(TokenVerificationError.FORMAT, "expected three segments")

        try:
            jwt.get_unverified_header(token)
            claims = jwt.get_unverified_claims(token)
        except JWTError as e:
            raise TokenVerificationError(TokenVerificationError.FORMAT, str(e))

        try:
            jws.verify(token, self._secret, algorithms=[self.algorithm])
        except JWSError as e:
            raise TokenVerificationError(TokenVerificationError.SIGNATURE, str(e))

        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise TokenVerificationError(TokenVerificationError.CLAIMS, "missing exp")
        if _timestamp(now or datetime.utcnow()) >= exp:
            raise TokenVerificationError(TokenVerificationError.EXPIRED, "token has expired")

        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    # exp is checked above against the supplied clock; require_exp would turn verify_exp back on
                    "verify_exp": False,
                    "require_iat": True,
                    "require_iss": True,
                    "require_aud": True,
                },
            )
        except JWTError as e:
            raise TokenVerificationError(TokenVerificationError.CLAIMS, str(e))

    # Token classes

    def issue_access_token(self, user_id: UUID, ttl: timedelta, now: Optional[datetime] = None) -> str:
        return self.issue({"sub": str(user_id), "typ": "access", "ver": CLAIMS_VERSION}, ttl, now)

    def issue_refresh_token(self, user_id: UUID, ttl: timedelta, now: Optional[datetime] = None) -> str:
        return self.issue({"sub": str(user_id), "typ": "refresh", "ver": CLAIMS_VERSION}, ttl, now)

    def verify_access_token(self, token: str, now: Optional[datetime] = None) -> AccessTokenClaims:
        """Verify an access token; refresh tokens are rejected."""
        return _parse_claims(AccessTokenClaims, self.verify(token, now))

    def verify_refresh_token(self, token: str, now: Optional[datetime] = None) -> RefreshTokenClaims:
        """Verify a refresh token; access tokens are rejected."""
        return _parse_claims(RefreshTokenClaims, self.verify(token, now))


def _parse_claims(schema, payload: Dict[str, Any]):
    try:
        return schema(**payload)
    except ValidationError as e:
        raise TokenVerificationError(
            TokenVerificationError.CLAIMS,
            f"payload does not match {schema.__name__}: {e.error_count()} error(s)",
        )


@lru_cache
def get_token_codec() -> TokenCodec:
    """
    Codec built from settings.

    Raises:
        ConfigurationError: SECRET_KEY missing
    """
    settings = get_settings()
    return TokenCodec(
        secret=settings.SECRET_KEY,
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
        algorithm=settings.JWT_ALGORITHM,
    )


def access_token_ttl() -> timedelta:
    return timedelta(hours=get_settings().ACCESS_TOKEN_EXPIRE_HOURS)


def refresh_token_ttl() -> timedelta:
    return timedelta(days=get_settings().REFRESH_TOKEN_EXPIRE_DAYS)
