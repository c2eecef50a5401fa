"""Password-reset notification hook. Delivery itself (email etc.) lives elsewhere."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from models.user import User

logger = logging.getLogger(__name__)


class ResetNotifier(Protocol):
    def send_password_reset(self, user: User, token: str, expires_at: datetime) -> None:
        ...


class LoggingResetNotifier:
    """Records that a reset was requested. The token itself is never logged."""

    def send_password_reset(self, user: User, token: str, expires_at: datetime) -> None:
        logger.info("password reset requested user_id=%s expires_at=%s", user.id, expires_at.isoformat())
