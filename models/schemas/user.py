from marshmallow import EXCLUDE, Schema, fields, pre_load, validate, validates, ValidationError

_required = validate.Length(min=1, error="Field may not be empty.")


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _validate_password_length(value):
    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")


class UserCreateSchema(Schema):
    full_name = fields.String(required=True, validate=_required)
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        _validate_password_length(value)


class UserLoginSchema(Schema):
    email = fields.String(required=True, validate=_required)
    password = fields.String(required=True, validate=_required, load_only=True)


class UserUpdateSchema(Schema):
    full_name = fields.String(required=True, validate=_required)
    email = fields.Email(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data


class ChangePasswordSchema(Schema):
    old_password = fields.String(required=True, validate=_required, load_only=True)
    new_password = fields.String(required=True, load_only=True)

    @validates("new_password")
    def validate_new_password(self, value, **kwargs):
        _validate_password_length(value)


class ForgotPasswordSchema(Schema):
    email = fields.String(required=True, validate=_required)


class RefreshSchema(Schema):
    refresh_token = fields.String(allow_none=True, load_only=True)


class ResetPasswordSchema(Schema):
    token = fields.String(required=True, validate=_required)
    new_password = fields.String(required=True, load_only=True)

    @validates("new_password")
    def validate_new_password(self, value, **kwargs):
        _validate_password_length(value)


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    full_name = fields.String(allow_none=True)
    email = fields.String(allow_none=False)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class ProfileInSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    description = fields.String(allow_none=True)
    facebook = fields.URL(allow_none=True, data_key="facebook_link")
    github = fields.URL(allow_none=True, data_key="github_link")
    twitter = fields.URL(allow_none=True, data_key="twitter_link")
    instagram = fields.URL(allow_none=True, data_key="instagram_link")

    @pre_load
    def blank_to_none(self, data, **kwargs):
        # HTML forms submit untouched inputs as empty strings
        return {k: (None if v == "" else v) for k, v in dict(data).items()}


class ProfileOutSchema(Schema):
    id = fields.String()
    user_id = fields.String()
    avatar = fields.Method("get_avatar")
    description = fields.String(allow_none=True)
    social_media = fields.Method("get_social_media")

    def get_avatar(self, obj):
        return {"public_id": obj.avatar_public_id, "url": obj.avatar_url}

    def get_social_media(self, obj):
        return {
            "facebook": obj.facebook,
            "github": obj.github,
            "twitter": obj.twitter,
            "instagram": obj.instagram,
        }
