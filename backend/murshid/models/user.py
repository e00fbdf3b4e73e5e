# murshid/models/user.py
"""
Database model for users.
The credential record: identity, password hash, verification and OTP state,
lifecycle flags and role.
"""
import uuid
from tortoise import fields, models

AUTH_PROVIDERS = ("local", "google")
ROLES = ("user", "admin")


class User(models.Model):
    """
    User database model.

    Relationships:
    - Has at most one Profile (one-to-one, via related_name="profile")
    - Has many Conversations and QuizResults

    Security:
    - Password is stored as an Argon2 hash and never serialized
    - Email is unique and stored lower-cased
    - google_id is unique when present
    - otp_code/otp_expires_at are set and cleared together
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    first_name = fields.CharField(max_length=128, default="")
    last_name = fields.CharField(max_length=128, default="")
    email = fields.CharField(max_length=256, unique=True)
    google_id = fields.CharField(max_length=128, unique=True, null=True)
    auth_provider = fields.CharField(max_length=16, default="local")  # "local" or "google"
    password_hash = fields.CharField(max_length=255, null=True)  # null only while an OTP signup awaits a password
    role = fields.CharField(max_length=16, default="user")  # "user" or "admin"

    is_email_verified = fields.BooleanField(default=False)
    otp_code = fields.CharField(max_length=8, null=True)
    otp_expires_at = fields.DatetimeField(null=True)
    is_otp_signup = fields.BooleanField(default=False)

    onboarded = fields.BooleanField(default=False)
    active = fields.BooleanField(default=True)  # soft-delete marker
    is_deleted = fields.BooleanField(default=False)

    reset_token = fields.CharField(max_length=64, null=True)  # sha256 of the emailed token
    reset_token_expires_at = fields.DatetimeField(null=True)

    password_changed_at = fields.DatetimeField(null=True)
    last_login = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"

    def __str__(self) -> str:
        return self.email
