"""
Environment-aware configuration.
Values come from the process environment (and .env when present) and are
read once when the app is created.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_seconds(name: str, default: str) -> timedelta:
    return timedelta(seconds=int(os.getenv(name, default)))


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///accounts.db")
    SQL_ECHO = _env_flag("SQL_ECHO", "false")

    # jwt configurations
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "account-api")
    ACCESS_TOKEN_EXPIRES = _env_seconds("ACCESS_TOKEN_EXPIRES_SECONDS", "900")
    REFRESH_TOKEN_EXPIRES = _env_seconds("REFRESH_TOKEN_EXPIRES_SECONDS", "1209600")
    RESET_TOKEN_EXPIRES = _env_seconds("RESET_TOKEN_EXPIRES_SECONDS", "3600")
    # Password change keeps the current session unless this is switched on
    REVOKE_SESSIONS_ON_PASSWORD_CHANGE = _env_flag("REVOKE_SESSIONS_ON_PASSWORD_CHANGE", "false")

    # Token cookies (cross-site frontends need SameSite=None + Secure)
    COOKIE_SECURE = _env_flag("COOKIE_SECURE", "true")
    COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "None")

    # Avatar uploads
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads")
    MEDIA_BASE_URL = os.getenv("MEDIA_BASE_URL", "/media")
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    APP_ENV = "dev"
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True
    COOKIE_SECURE = _env_flag("COOKIE_SECURE", "false")
    COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "Lax")


class TestingConfig(BaseConfig):
    TESTING = True
    APP_ENV = "test"
    DATABASE_URL = "sqlite:///:memory:"
    JWT_SECRET = "test-secret-with-enough-bytes-for-hs256"
    COOKIE_SECURE = False
    COOKIE_SAMESITE = "Lax"
    REVOKE_SESSIONS_ON_PASSWORD_CHANGE = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    APP_ENV = "prod"
    # No fallback: a missing secret must stop the app from starting
    JWT_SECRET = os.getenv("JWT_SECRET")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
