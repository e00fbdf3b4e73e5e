# murshid/schemas/user.py
"""
Pydantic schemas for the current user's account and onboarding profile.
"""
import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator

from murshid.models.profile import GENDERS, PROFILE_TYPES, SYLLABI


def _one_of(value: str | None, allowed: tuple[str, ...], label: str) -> str | None:
    if value is not None and value not in allowed:
        raise ValueError(f"{label} must be one of: {', '.join(allowed)}")
    return value


class ProfileFieldsIn(BaseModel):
    """Profile fields as the frontend names them (``class`` is reserved in Python)."""

    model_config = ConfigDict(populate_by_name=True)

    gender: str | None = None
    dateOfBirth: dt.date | None = None
    profileType: str | None = None
    class_name: str | None = Field(None, alias="class")
    syllabus: str | None = None
    school: str | None = None
    bio: str | None = Field(None, max_length=500)
    profileImage: str | None = None

    @field_validator("gender")
    @classmethod
    def _gender(cls, v):
        return _one_of(v, GENDERS, "gender")

    @field_validator("profileType")
    @classmethod
    def _profile_type(cls, v):
        return _one_of(v, PROFILE_TYPES, "profileType")

    @field_validator("syllabus")
    @classmethod
    def _syllabus(cls, v):
        return _one_of(v, SYLLABI, "syllabus")

    @field_validator("dateOfBirth", mode="before")
    @classmethod
    def _date_only(cls, v):
        # The frontend sends full ISO timestamps from date pickers
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    def fields(self) -> dict:
        return self.model_dump(by_alias=True, exclude_unset=True)


class OnboardingIn(ProfileFieldsIn):
    pass


class UpdateMeIn(ProfileFieldsIn):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    firstName: str | None = None
    lastName: str | None = None
    email: str | None = None
