from flask import Blueprint, current_app, send_from_directory

bp = Blueprint("media", __name__)


@bp.get("/<path:filename>")
def serve_media(filename: str):
    """
    Serve an uploaded avatar stored by the local uploader.
    ---
    tags:
      - Profile
    parameters:
      - { in: path, name: filename, type: string, required: true }
    responses:
      200: { description: File contents }
      404: { description: No such file }
    """
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
