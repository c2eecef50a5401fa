from __future__ import annotations

from flask import Blueprint, request, g, current_app

from models.schemas.user import UserOutSchema, UserUpdateSchema
from utils.decorators import jwt_required

from .errors import success_response

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()
user_update_schema = UserUpdateSchema()


@bp.get("/users/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return success_response(user_out_schema.dump(g.current_user), "Current user fetched")


@bp.patch("/users/me")
@jwt_required()
def update_me():
    """
    Update account details (full name and email are both required).
    ---
    tags:
      - Users
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
             full_name: { type: string }
             email: { type: string }
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      409: { description: Email already registered }
      422: { description: Validation error }
    """
    payload = request.get_json(silent=True) or {}
    data = user_update_schema.load(payload)
    user = current_app.extensions["accounts"].update_account_details(
        g.current_user.id, data["full_name"], data["email"]
    )
    return success_response(user_out_schema.dump(user), "Account details updated successfully")
