from __future__ import annotations

from flask import Blueprint, request, g, current_app

from models.schemas.user import ProfileInSchema, ProfileOutSchema
from services.errors import NotFoundError
from utils.decorators import jwt_required

from .errors import success_response

bp = Blueprint("profile", __name__)

profile_in_schema = ProfileInSchema()
profile_out_schema = ProfileOutSchema()


@bp.post("/profile")
@jwt_required()
def setup_profile():
    """
    Set up (or replace) the current user's profile with an avatar upload.
    ---
    tags:
      - Profile
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: avatar, type: file, required: true }
      - { in: formData, name: description, type: string }
      - { in: formData, name: facebook_link, type: string }
      - { in: formData, name: github_link, type: string }
      - { in: formData, name: twitter_link, type: string }
      - { in: formData, name: instagram_link, type: string }
    responses:
      200: { description: Profile saved }
      422: { description: Missing avatar or invalid links }
      502: { description: Avatar upload failed }
    """
    fields = profile_in_schema.load(request.form.to_dict())
    profile = current_app.extensions["accounts"].setup_profile(
        g.current_user.id, request.files.get("avatar"), **fields
    )
    return success_response(profile_out_schema.dump(profile), "User profile setup completed")


@bp.get("/profile")
@jwt_required()
def get_profile():
    """
    Get the current user's profile.
    ---
    tags:
      - Profile
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      404: { description: Profile not set up }
    """
    profile = current_app.extensions["accounts"].get_profile(g.current_user.id)
    if profile is None:
        raise NotFoundError("Profile not set up")
    return success_response(profile_out_schema.dump(profile), "User profile fetched")
