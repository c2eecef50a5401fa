from __future__ import annotations
from functools import wraps
from flask import request, g, current_app

from services.errors import AuthenticationError

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def get_access_token() -> str | None:
    """Bearer header first, then the access-token cookie."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return request.cookies.get(ACCESS_COOKIE)


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = get_access_token()
            if not token:
                raise AuthenticationError("Missing or invalid Authorization header")
            accounts = current_app.extensions["accounts"]
            decoded = accounts.sessions.verify_access_token(token)

            # Raises AuthenticationError if the user was deleted since issue
            g.current_user = accounts.get_user(decoded["sub"])
            return fn(*args, **kwargs)

        return wrapper

    return decorator
