import logging
import os

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models import CredentialStore, DBStorage
from services.accounts import AccountService
from services.errors import TokenSigningError
from services.media import LocalMediaUploader, MediaUploader
from services.notifier import LoggingResetNotifier, ResetNotifier
from services.sessions import SessionManager
from services.tokens import TokenIssuer, TokenSettings

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Account API",
        "version": "1.0.0",
        "description": "User registration, login sessions, password management and profiles.",
    },
    "basePath": "/",  # Blueprints are mounted under /api/v1
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(
    config_name: str | None = None,
    uploader: MediaUploader | None = None,
    notifier: ResetNotifier | None = None,
) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    The storage, token issuer, session manager and account service are built
    once here from the loaded config and shared through app.extensions.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    app.logger.setLevel(app.config["LOG_LEVEL"])

    if not app.config.get("JWT_SECRET") and app.config["APP_ENV"] not in ("dev", "test"):
        raise TokenSigningError("JWT_SECRET must be set outside development and testing")
    # Uploads are written and served from the same absolute folder
    app.config["UPLOAD_FOLDER"] = os.path.abspath(app.config["UPLOAD_FOLDER"])

    # Cross-Origin Resource Sharing; cookies need credentials support
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage = DBStorage(app.config["DATABASE_URL"], echo=app.config["SQL_ECHO"])
    storage.reload()
    store = CredentialStore(storage)
    sessions = SessionManager(store, TokenIssuer(TokenSettings.from_config(app.config)))
    app.extensions["storage"] = storage
    app.extensions["accounts"] = AccountService(
        store,
        sessions,
        uploader=uploader or LocalMediaUploader(app.config["UPLOAD_FOLDER"], app.config["MEDIA_BASE_URL"]),
        notifier=notifier or LoggingResetNotifier(),
        reset_token_expires=app.config["RESET_TOKEN_EXPIRES"],
        revoke_on_password_change=app.config["REVOKE_SESSIONS_ON_PASSWORD_CHANGE"],
    )

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp
    from .profile import bp as profile_bp
    from .media import bp as media_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")
    app.register_blueprint(profile_bp, url_prefix="/api/v1")
    # Local avatars; a remote MEDIA_BASE_URL is served by whoever hosts it
    if app.config["MEDIA_BASE_URL"].startswith("/"):
        app.register_blueprint(media_bp, url_prefix=app.config["MEDIA_BASE_URL"].rstrip("/"))

    # Ensure the DB session is removed at the end of each request/app context
    # This calls scoped_session.remove(), preventing connection leaks
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Account API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    logging.getLogger(__name__).info("account api created env=%s", app.config["APP_ENV"])
    return app
