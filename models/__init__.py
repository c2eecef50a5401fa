"""Persistence layer: SQLAlchemy models, storage and the credential store."""
from models.base_model import Base
from models.user import User
from models.user_profile import UserProfile
from models.db_storage import DBStorage
from models.credential_store import CredentialStore

__all__ = ["Base", "User", "UserProfile", "DBStorage", "CredentialStore"]
