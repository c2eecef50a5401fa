from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship


class User(BaseModel, Base):
    __tablename__ = "users"
    __secret_fields__ = ("password_hash", "refresh_token_hash", "reset_token_hash", "reset_token_expires_at")

    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    # Single session slot: digest of the one refresh token currently honoured
    refresh_token_hash = Column(String(64), nullable=True)
    reset_token_hash = Column(String(64), nullable=True, index=True)
    reset_token_expires_at = Column(DateTime(timezone=True), nullable=True)

    profile = relationship(
        "UserProfile",
        back_populates="user",
        uselist=False,
        passive_deletes=True
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @property
    def has_active_session(self) -> bool:
        return self.refresh_token_hash is not None
