# murshid/schemas/auth.py
"""
Pydantic schemas for authentication endpoints.

Fields are optional at the schema level so that missing values reach the
services, which answer with the specific "Please provide ..." messages.
"""
from pydantic import BaseModel


class SignupIn(BaseModel):
    firstName: str | None = None
    lastName: str | None = None
    email: str | None = None
    password: str | None = None


class SendOtpIn(BaseModel):
    email: str | None = None
    type: str = "signup"  # "signup" or "reset"
    firstName: str | None = None
    lastName: str | None = None


class VerifyOtpIn(BaseModel):
    email: str | None = None
    otp: str | None = None
    type: str = "signup"


class SetupPasswordIn(BaseModel):
    email: str | None = None
    password: str | None = None
    passwordConfirm: str | None = None


class LoginIn(BaseModel):
    email: str | None = None
    password: str | None = None


class CheckEmailIn(BaseModel):
    email: str | None = None
    checkVerified: bool = False  # count only verified accounts as existing


class ForgotPasswordIn(BaseModel):
    email: str | None = None


class ResetPasswordIn(BaseModel):
    password: str | None = None
    passwordConfirm: str | None = None


class UpdatePasswordIn(BaseModel):
    currentPassword: str | None = None
    newPassword: str | None = None
