from sqlalchemy import Column, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class UserProfile(BaseModel, Base):
    __tablename__ = "user_profiles"

    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True
    )
    avatar_public_id = Column(String(255), nullable=False)
    avatar_url = Column(String(1024), nullable=False)
    description = Column(Text, nullable=True)
    facebook = Column(String(512), nullable=True)
    github = Column(String(512), nullable=True)
    twitter = Column(String(512), nullable=True)
    instagram = Column(String(512), nullable=True)

    user = relationship("User", back_populates="profile")
