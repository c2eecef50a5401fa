"""
Account workflows built on the session core: registration, login/logout,
password change and reset, account details and profile setup.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.datastructures import FileStorage

from models.credential_store import CredentialStore
from models.user import User
from models.user_profile import UserProfile
from services.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    UploadError,
    ValidationError,
)
from services.media import MediaUploader
from services.notifier import ResetNotifier
from services.sessions import SessionManager
from services.tokens import TokenPair
from utils.security import generate_reset_token, hash_password, token_digest

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("description", "facebook", "github", "twitter", "instagram")


@dataclass(frozen=True)
class AuthResult:
    user: User
    tokens: TokenPair


def _require(**fields) -> None:
    missing = [name for name, value in fields.items() if not (isinstance(value, str) and value.strip())]
    if missing:
        raise ValidationError("All fields are required", details={name: ["Missing data for required field."] for name in missing})


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AccountService:
    def __init__(
        self,
        store: CredentialStore,
        sessions: SessionManager,
        uploader: MediaUploader,
        notifier: ResetNotifier,
        reset_token_expires: timedelta = timedelta(hours=1),
        revoke_on_password_change: bool = False,
    ):
        self.store = store
        self.sessions = sessions
        self.uploader = uploader
        self.notifier = notifier
        self.reset_token_expires = reset_token_expires
        self.revoke_on_password_change = revoke_on_password_change

    def register(self, full_name: str, email: str, password: str) -> AuthResult:
        _require(full_name=full_name, email=email, password=password)
        email = normalize_email(email)
        if self.store.find_by_email(email) is not None:
            raise ConflictError("User already exists")
        try:
            user = self.store.create_identity(full_name.strip(), email, password)
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same email
            raise ConflictError("User already exists") from exc
        logger.info("user registered user_id=%s", user.id)
        return AuthResult(user=user, tokens=self.sessions.issue_session(user.id))

    def login(self, email: str, password: str) -> AuthResult:
        _require(email=email, password=password)
        user = self.sessions.authenticate(normalize_email(email), password)
        return AuthResult(user=user, tokens=self.sessions.issue_session(user.id))

    def refresh(self, refresh_token: Optional[str]) -> AuthResult:
        if not refresh_token:
            raise AuthenticationError("Refresh token is required")
        tokens = self.sessions.refresh_session(refresh_token)
        user = self.store.find_by_id(self.sessions.verify_access_token(tokens.access_token)["sub"])
        return AuthResult(user=user, tokens=tokens)

    def logout(self, user_id: str) -> None:
        self.sessions.revoke_session(user_id)

    def get_user(self, user_id: str) -> User:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise AuthenticationError("User not found")
        return user

    def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        _require(old_password=old_password, new_password=new_password)
        user = self.get_user(user_id)
        if not self.store.verify_password(user, old_password):
            raise AuthenticationError("Invalid old password")
        try:
            self.store.update_password_hash(user.id, hash_password(new_password))
        except SQLAlchemyError as exc:
            raise InternalError("Could not update password") from exc
        logger.info("password changed user_id=%s", user.id)
        if self.revoke_on_password_change:
            self.sessions.revoke_session(user.id)

    def update_account_details(self, user_id: str, full_name: str, email: str) -> User:
        _require(full_name=full_name, email=email)
        email = normalize_email(email)
        owner = self.store.find_by_email(email)
        if owner is not None and owner.id != user_id:
            raise ConflictError("Email already registered")
        try:
            self.store.update_details(user_id, full_name.strip(), email)
        except IntegrityError as exc:
            raise ConflictError("Email already registered") from exc
        return self.get_user(user_id)

    def forgot_password(self, email: str) -> None:
        """Start a reset. Unknown emails return silently so the reply is identical."""
        _require(email=email)
        user = self.store.find_by_email(normalize_email(email))
        if user is None:
            logger.info("password reset requested for unknown email")
            return
        token = generate_reset_token()
        expires_at = datetime.now(timezone.utc) + self.reset_token_expires
        self.store.set_reset_token(user.id, token_digest(token), expires_at)
        self.notifier.send_password_reset(user, token, expires_at)

    def reset_password(self, token: str, new_password: str) -> None:
        _require(token=token, new_password=new_password)
        digest = token_digest(token)
        now = datetime.now(timezone.utc)
        user = self.store.find_by_reset_token(digest)
        if user is None or user.reset_token_expires_at is None:
            raise AuthenticationError("Invalid or expired reset token")
        if _as_utc(user.reset_token_expires_at) <= now:
            self.store.set_reset_token(user.id, None, None)
            raise AuthenticationError("Invalid or expired reset token")
        # Only the request that clears the token may set the password
        if not self.store.consume_reset_token(user.id, digest, now):
            raise AuthenticationError("Invalid or expired reset token")

        self.store.update_password_hash(user.id, hash_password(new_password))
        self.sessions.revoke_session(user.id)
        logger.info("password reset completed user_id=%s", user.id)

    def setup_profile(self, user_id: str, avatar: Optional[FileStorage], **fields) -> UserProfile:
        if avatar is None or not avatar.filename:
            raise ValidationError("Avatar file is required")
        existing = self.store.find_profile(user_id)
        previous_avatar = existing.avatar_public_id if existing is not None else None

        media = self.uploader.upload(avatar)
        values = {name: fields.get(name) for name in PROFILE_FIELDS}
        try:
            profile = self.store.save_profile(
                user_id,
                avatar_public_id=media.public_id,
                avatar_url=media.url,
                **values,
            )
        except SQLAlchemyError as exc:
            self._discard_avatar(media.public_id)
            raise InternalError("Could not save user profile") from exc

        if previous_avatar and previous_avatar != media.public_id:
            self._discard_avatar(previous_avatar)
        return profile

    def _discard_avatar(self, public_id: str) -> None:
        # Cleanup failures leave an orphaned file, not a failed request
        try:
            self.uploader.delete(public_id)
        except UploadError:
            logger.warning("could not delete avatar public_id=%s", public_id, exc_info=True)

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.store.find_profile(user_id)
