# murshid/models/profile.py
"""
Database model for the onboarding profile.
Informational fields collected once after signup; at most one per user.
"""
import uuid
from tortoise import fields, models

GENDERS = ("Male", "Female", "Other", "Prefer not to say")
PROFILE_TYPES = ("Student", "Dropout", "Repeating Year", "Homeschooled", "Other")
SYLLABI = ("CBSE", "ICSE", "State Board", "Other")
DEFAULT_PROFILE_IMAGE = "default.jpg"


class Profile(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user = fields.OneToOneField("models.User", related_name="profile", on_delete=fields.CASCADE)
    gender = fields.CharField(max_length=32, null=True)
    date_of_birth = fields.DateField(null=True)
    profile_type = fields.CharField(max_length=32, null=True)
    class_name = fields.CharField(max_length=64, null=True)  # exposed as "class"
    syllabus = fields.CharField(max_length=32, null=True)
    school = fields.CharField(max_length=256, null=True)
    bio = fields.CharField(max_length=500, default="")
    profile_image = fields.CharField(max_length=512, default=DEFAULT_PROFILE_IMAGE)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "profiles"
