"""
CredentialStore: the persistence contract the session core depends on.

All refresh-token writes are single UPDATE statements on one row, so a write
either lands completely or not at all, and concurrent writers resolve as
last-writer-wins. ``replace_refresh_token`` adds a compare-and-swap guard for
rotation.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from models.db_storage import DBStorage
from models.user import User
from models.user_profile import UserProfile
from utils.security import hash_password, verify_password


class CredentialStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    def find_by_email(self, email: str) -> Optional[User]:
        return self.session.query(User).filter(User.email == email).first()

    def find_by_id(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        return self.storage.get(User, user_id)

    def create_identity(self, full_name: str, email: str, password: str) -> User:
        """Insert a user; the plaintext password is hashed here and dropped."""
        user = User(
            full_name=full_name,
            email=email,
            password_hash=hash_password(password),
        )
        self.storage.new(user)
        self.storage.save()
        return user

    def verify_password(self, user: User, plaintext: str) -> bool:
        return verify_password(plaintext, user.password_hash)

    def _update_user(self, user_id: str, values: dict, *criteria) -> bool:
        """Run one UPDATE on a single user row and commit; True if a row matched."""
        query = self.session.query(User).filter(User.id == user_id, *criteria)
        try:
            matched = query.update(values, synchronize_session=False)
        except SQLAlchemyError:
            self.storage.rollback()
            raise
        self.storage.save()
        # Loaded instances would otherwise keep the pre-update values
        self.session.expire_all()
        return matched == 1

    def update_refresh_token(self, user_id: str, token_hash: str | None) -> bool:
        return self._update_user(user_id, {User.refresh_token_hash: token_hash})

    def replace_refresh_token(self, user_id: str, expected_hash: str, token_hash: str) -> bool:
        """Swap the stored digest only if it still equals ``expected_hash``."""
        return self._update_user(
            user_id,
            {User.refresh_token_hash: token_hash},
            User.refresh_token_hash == expected_hash,
        )

    def update_password_hash(self, user_id: str, password_hash: str) -> bool:
        return self._update_user(user_id, {User.password_hash: password_hash})

    def update_details(self, user_id: str, full_name: str, email: str) -> bool:
        return self._update_user(user_id, {User.full_name: full_name, User.email: email})

    def set_reset_token(self, user_id: str, token_hash: str | None, expires_at: datetime | None) -> bool:
        return self._update_user(
            user_id,
            {User.reset_token_hash: token_hash, User.reset_token_expires_at: expires_at},
        )

    def find_by_reset_token(self, token_hash: str) -> Optional[User]:
        return self.session.query(User).filter(User.reset_token_hash == token_hash).first()

    def consume_reset_token(self, user_id: str, token_hash: str, now: datetime) -> bool:
        """Clear an unexpired reset token in one UPDATE; False if it was already used or expired."""
        return self._update_user(
            user_id,
            {User.reset_token_hash: None, User.reset_token_expires_at: None},
            User.reset_token_hash == token_hash,
            User.reset_token_expires_at > now,
        )

    def find_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.session.query(UserProfile).filter(UserProfile.user_id == user_id).first()

    def save_profile(self, user_id: str, **fields) -> UserProfile:
        """Create the user's profile, or overwrite the existing one."""
        profile = self.find_profile(user_id)
        if profile is None:
            profile = UserProfile(user_id=user_id, **fields)
        else:
            for key, value in fields.items():
                setattr(profile, key, value)
        self.storage.new(profile)
        self.storage.save()
        return profile
