"""
Session lifecycle for the single-slot session model.

Each user row holds the digest of at most one refresh token. Issuing a session
overwrites it, revoking clears it, and a refresh token is honoured only while
its digest is the stored one.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError

from models.credential_store import CredentialStore
from services.errors import AuthenticationError, InternalError
from services.tokens import ACCESS, REFRESH, TokenIssuer, TokenPair
from utils.security import burn_password_check, digest_matches, token_digest

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH = "Invalid or revoked refresh token"


class SessionManager:
    def __init__(self, store: CredentialStore, issuer: TokenIssuer):
        self.store = store
        self.issuer = issuer

    def authenticate(self, email: str, password: str):
        """Return the user for valid credentials. Does not touch session state."""
        user = self.store.find_by_email(email)
        if user is None:
            burn_password_check(password)
            logger.info("authentication failed: unknown email")
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not self.store.verify_password(user, password):
            logger.info("authentication failed user_id=%s", user.id)
            raise AuthenticationError(INVALID_CREDENTIALS)
        return user

    def issue_session(self, user_id: str) -> TokenPair:
        """
        Mint a token pair and record the refresh token, replacing any prior one.

        Only reached after the caller has authenticated the user, so a missing
        user is an internal consistency failure. Tokens are returned only once
        the refresh digest is durably stored.
        """
        user = self.store.find_by_id(user_id)
        if user is None:
            raise InternalError(f"Authenticated user {user_id} no longer exists")

        pair = self._mint(user.id)
        try:
            stored = self.store.update_refresh_token(user.id, token_digest(pair.refresh_token))
        except SQLAlchemyError as exc:
            raise InternalError("Could not persist refresh token") from exc
        if not stored:
            raise InternalError(f"User {user_id} vanished while storing refresh token")

        logger.info("session issued user_id=%s", user.id)
        return pair

    def refresh_session(self, refresh_token: str) -> TokenPair:
        """Exchange a current refresh token for a new pair; the old one stops working."""
        claims = self.issuer.decode(refresh_token, expected_type=REFRESH)
        user = self.store.find_by_id(claims["sub"])
        if user is None or not digest_matches(refresh_token, user.refresh_token_hash):
            logger.info("refresh rejected user_id=%s", claims.get("sub"))
            raise AuthenticationError(INVALID_REFRESH)

        pair = self._mint(user.id)
        try:
            swapped = self.store.replace_refresh_token(
                user.id, token_digest(refresh_token), token_digest(pair.refresh_token)
            )
        except SQLAlchemyError as exc:
            raise InternalError("Could not persist refresh token") from exc
        if not swapped:
            # Another request rotated or revoked the session first
            logger.info("refresh lost rotation race user_id=%s", user.id)
            raise AuthenticationError(INVALID_REFRESH)

        logger.info("session rotated user_id=%s", user.id)
        return pair

    def revoke_session(self, user_id: str) -> None:
        """Clear the stored refresh token. Revoking twice is a no-op."""
        try:
            self.store.update_refresh_token(user_id, None)
        except SQLAlchemyError as exc:
            raise InternalError("Could not revoke session") from exc
        logger.info("session revoked user_id=%s", user_id)

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        return self.issuer.decode(token, expected_type=ACCESS)

    def is_refresh_token_current(self, refresh_token: str) -> bool:
        try:
            claims = self.issuer.decode(refresh_token, expected_type=REFRESH)
        except AuthenticationError:
            return False
        user = self.store.find_by_id(claims["sub"])
        return user is not None and digest_matches(refresh_token, user.refresh_token_hash)

    def _mint(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=self.issuer.issue_access_token(user_id),
            refresh_token=self.issuer.issue_refresh_token(user_id),
        )
