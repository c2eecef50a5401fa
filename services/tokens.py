"""
Token issuer: signs access and refresh JWTs via PyJWT.

Settings are injected once at startup as a frozen TokenSettings value; nothing
here looks up application config on its own.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping

import jwt

from services.errors import AuthenticationError, TokenSigningError
from utils.security import generate_jti

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenSettings:
    secret: str
    algorithm: str = "HS256"
    issuer: str = "account-api"
    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=14)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TokenSettings":
        return cls(
            secret=config.get("JWT_SECRET") or "",
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "account-api"),
            access_expires=config["ACCESS_TOKEN_EXPIRES"],
            refresh_expires=config["REFRESH_TOKEN_EXPIRES"],
        )


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    def __init__(self, settings: TokenSettings):
        self.settings = settings

    def issue_access_token(self, user_id: str) -> str:
        return self._sign(user_id, ACCESS, self.settings.access_expires)

    def issue_refresh_token(self, user_id: str) -> str:
        return self._sign(user_id, REFRESH, self.settings.refresh_expires)

    def _sign(self, user_id: str, token_type: str, lifetime: timedelta) -> str:
        if not self.settings.secret:
            raise TokenSigningError("JWT secret is not configured")
        now = _now()
        payload = {
            "iss": self.settings.issuer,
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + lifetime).timestamp()),
            "type": token_type,
            "jti": generate_jti(),
        }
        try:
            return jwt.encode(payload, self.settings.secret, algorithm=self.settings.algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as exc:
            raise TokenSigningError(f"Could not sign {token_type} token: {exc}") from exc

    def decode(self, token: str, expected_type: str = ACCESS) -> Dict[str, Any]:
        """
        Decode and validate a JWT. Raises AuthenticationError on an invalid
        signature, expiry, issuer or wrong token type.
        """
        if not token:
            raise AuthenticationError("Missing token")
        try:
            decoded = jwt.decode(
                token,
                self.settings.secret,
                algorithms=[self.settings.algorithm],
                issuer=self.settings.issuer,
                options={"require": ["exp", "iat", "sub", "jti"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except jwt.PyJWTError:
            raise AuthenticationError("Invalid token")

        if decoded.get("type") != expected_type:
            raise AuthenticationError("Wrong token type")
        return decoded
