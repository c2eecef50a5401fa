"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/change-password
- POST /auth/forgot-password
- POST /auth/reset-password

Sessions are issued, rotated and revoked only through the SessionManager.
Tokens travel back as httpOnly cookies and in the JSON body.
"""
from __future__ import annotations

from flask import Blueprint, request, g, current_app

from models.schemas.user import (
    ChangePasswordSchema,
    ForgotPasswordSchema,
    RefreshSchema,
    ResetPasswordSchema,
    UserCreateSchema,
    UserLoginSchema,
    UserOutSchema,
)
from services.accounts import AuthResult
from utils.decorators import ACCESS_COOKIE, REFRESH_COOKIE, jwt_required

from .errors import success_response

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()
change_password_schema = ChangePasswordSchema()
forgot_password_schema = ForgotPasswordSchema()
refresh_schema = RefreshSchema()
reset_password_schema = ResetPasswordSchema()


def _accounts():
    return current_app.extensions["accounts"]


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": current_app.config["COOKIE_SECURE"],
        "samesite": current_app.config["COOKIE_SAMESITE"],
        "path": "/",
    }


def _session_response(result: AuthResult, message: str, status: int):
    response, status = success_response(
        {
            "user": user_out_schema.dump(result.user),
            "access_token": result.tokens.access_token,
            "refresh_token": result.tokens.refresh_token,
            "token_type": "bearer",
            "expires_in": int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds()),
        },
        message,
        status,
    )
    options = _cookie_options()
    response.set_cookie(
        ACCESS_COOKIE, result.tokens.access_token,
        max_age=int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds()), **options
    )
    response.set_cookie(
        REFRESH_COOKIE, result.tokens.refresh_token,
        max_age=int(current_app.config["REFRESH_TOKEN_EXPIRES"].total_seconds()), **options
    )
    return response, status


@bp.post("/register")
def register():
    """
    Register a new user and start a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [full_name, email, password]
          properties:
            full_name: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created (returns user and tokens, sets cookies)
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)
    result = _accounts().register(data["full_name"], data["email"], data["password"])
    return _session_response(result, "User created successfully", 201)


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens, sets cookies)
      401:
        description: Invalid email or password
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)
    result = _accounts().login(data["email"], data["password"])
    return _session_response(result, "Logged in successfully", 200)


@bp.post("/refresh")
def refresh():
    """
    Use the refresh token to obtain a new access and refresh token (rotation).
    The refresh token is read from the body or the refreshToken cookie.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns the rotated pair)
      401:
        description: Invalid or revoked refresh token
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_schema.load(payload)
    token = data.get("refresh_token") or request.cookies.get(REFRESH_COOKIE)
    result = _accounts().refresh(token)
    return _session_response(result, "Access token refreshed", 200)


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: revokes the stored refresh token and clears the cookies
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    _accounts().logout(g.current_user.id)
    response, status = success_response({}, "User logged out successfully")
    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
    return response, status


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change the current user's password (old password required)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             old_password: { type: string }
             new_password: { type: string }
    responses:
      200:
        description: Password changed
      401:
        description: Invalid old password
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = change_password_schema.load(payload)
    _accounts().change_password(g.current_user.id, data["old_password"], data["new_password"])
    return success_response({}, "Password changed successfully")


@bp.post("/forgot-password")
def forgot_password():
    """
    Start a password reset. The reply is the same whether or not the email exists.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
    responses:
      200:
        description: Reset requested
      422:
        description: Email is required
    """
    payload = request.get_json(silent=True) or {}
    data = forgot_password_schema.load(payload)
    _accounts().forgot_password(data["email"])
    return success_response({}, "If the account exists, a reset link has been sent")


@bp.post("/reset-password")
def reset_password():
    """
    Complete a password reset with the emailed token; ends any active session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             token: { type: string }
             new_password: { type: string }
    responses:
      200:
        description: Password reset
      401:
        description: Invalid or expired reset token
    """
    payload = request.get_json(silent=True) or {}
    data = reset_password_schema.load(payload)
    _accounts().reset_password(data["token"], data["new_password"])
    return success_response({}, "Password has been reset")
