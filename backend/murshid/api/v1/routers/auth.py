# murshid/api/v1/routers/auth.py
import json
import logging
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from murshid.api.v1.deps import get_current_user, get_optional_user
from murshid.config import settings
from murshid.core.errors import AppError, AuthenticationFailed, ValidationError
from murshid.core.guard import TOKEN_COOKIE
from murshid.models.user import User
from murshid.schemas.auth import (
    CheckEmailIn,
    ForgotPasswordIn,
    LoginIn,
    ResetPasswordIn,
    SendOtpIn,
    SetupPasswordIn,
    SignupIn,
    UpdatePasswordIn,
    VerifyOtpIn,
)
from murshid.services import credential_store, google_oauth, oauth_bridge, otp_service, session_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=settings.jwt_expires_in_days * 24 * 3600,
        httponly=True,
        secure=settings.env == "production",
        samesite="lax",
    )


def _session_body(user: User, token: str, response: Response, message: str | None = None) -> dict:
    _set_token_cookie(response, token)
    body = {"status": "success", "token": token, "data": {"user": credential_store.public_user(user)}}
    if message:
        body["message"] = message
    return body


@router.post("/signup")
async def signup(body: SignupIn):
    """
    Register with a password.

    The account stays unverified (and cannot log in) until the emailed signup
    code is confirmed through /auth/verify-otp.

    Returns:
        dict: ``{status, message, data: {email, type: "signup"}}``

    Error codes:
        - ALREADY_REGISTERED (400): the email already belongs to a verified account
        - VALIDATION_ERROR (400): missing email or password too short
        - EMAIL_DISPATCH_FAILURE (500): the code could not be sent
    """
    user = await otp_service.signup(body.firstName, body.lastName, body.email, body.password)
    return {
        "status": "success",
        "message": "OTP sent to your email. Please verify to complete your registration.",
        "data": {"email": user.email, "type": "signup"},
    }


@router.post("/send-otp")
async def send_otp(body: SendOtpIn):
    """
    Send (or re-send) a one-time code.

    ``type="signup"`` creates a passwordless account for an unknown email;
    ``type="reset"`` requires an existing account. A re-send replaces the
    previous code and restarts its 10 minute window.
    """
    user = await otp_service.request_otp(body.email, body.type, body.firstName, body.lastName)
    return {"status": "success", "message": "OTP sent successfully!", "data": {"email": user.email, "type": body.type}}


@router.post("/verify-otp")
async def verify_otp(body: VerifyOtpIn, response: Response):
    """
    Confirm a one-time code.

    ``requiresPasswordSetup`` is true for passwordless signups, which get no
    token until /auth/setup-password; everyone else gets a session token.
    """
    result = await otp_service.verify_otp(body.email, body.otp, body.type)
    user = result.user
    payload = {
        "status": "success",
        "message": "Please set your password" if result.requires_password_setup else "OTP verified successfully",
        "requiresPasswordSetup": result.requires_password_setup,
        "data": {
            "email": user.email,
            "type": result.purpose,
            "userId": str(user.id),
            "firstName": user.first_name,
            "lastName": user.last_name,
        },
    }
    if result.token:
        payload["token"] = result.token
        _set_token_cookie(response, result.token)
    return payload


@router.post("/setup-password")
async def setup_password(body: SetupPasswordIn, response: Response, acting: User | None = Depends(get_optional_user)):
    user, token = await otp_service.setup_password(body.email, body.password, body.passwordConfirm, acting_user=acting)
    _set_token_cookie(response, token)
    return {
        "status": "success",
        "message": "Password set successfully",
        "token": token,
        "data": {"user": {"id": str(user.id), "email": user.email, "firstName": user.first_name, "lastName": user.last_name}},
    }


@router.post("/login")
async def login(body: LoginIn, response: Response):
    """
    Authenticate with email and password.

    The token is returned in the body and also set as an HttpOnly ``token``
    cookie for browser clients.

    Error codes:
        - INVALID_CREDENTIALS (401): unknown email or wrong password
        - EMAIL_NOT_VERIFIED (401): the signup code was never confirmed
    """
    user, token = await session_service.login(body.email, body.password)
    return _session_body(user, token, response)


@router.post("/logout")
async def logout(response: Response):
    """
    Clear the session cookie.

    Tokens are stateless; one that was copied elsewhere stays valid until it
    expires or the password changes.
    """
    response.delete_cookie(TOKEN_COOKIE)
    return {"status": "success", "message": "Logged out successfully"}


@router.post("/check-email")
async def check_email(body: CheckEmailIn):
    if not body.email:
        raise ValidationError("Please provide an email address")
    result = await session_service.check_email(body.email, check_verified=body.checkVerified)
    return {"status": "success", **result}


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordIn):
    if not body.email:
        raise ValidationError("Please provide an email address")
    await session_service.forgot_password(body.email)
    return {"status": "success", "message": "Token sent to email!"}


@router.patch("/reset-password/{token}")
async def reset_password(token: str, body: ResetPasswordIn, response: Response):
    if body.passwordConfirm is not None and body.password != body.passwordConfirm:
        raise ValidationError("Passwords do not match")
    user, session_token = await session_service.reset_password(token, body.password)
    return _session_body(user, session_token, response, message="Password reset successfully")


@router.patch("/update-my-password")
async def update_my_password(body: UpdatePasswordIn, response: Response, user: User = Depends(get_current_user)):
    """
    Change the password of the signed-in user.

    Every token issued before this call stops working; the response carries
    a fresh one.
    """
    user, token = await session_service.update_password(user, body.currentPassword, body.newPassword)
    return _session_body(user, token, response, message="Password updated successfully")


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return {"status": "success", "data": {"user": credential_store.public_user(user)}}


# ===== Google =====

def _frontend_error_redirect(message: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.frontend_url}/login?{urlencode({'error': message})}", status_code=302)


@router.get("/google")
async def google_login(request: Request, action: str = Query("login")):
    """Start Google sign-in; ``action`` (login or signup) rides along in the OAuth state."""
    return await google_oauth.authorize_redirect(request, oauth_bridge.encode_state(action))


@router.get("/google/callback")
async def google_callback(request: Request, state: str | None = None, error: str | None = None):
    """
    Finish Google sign-in and hand the session to the frontend.

    Success redirects to ``FRONTEND_URL/auth/callback?token=...&user=<JSON>``;
    any failure redirects to ``FRONTEND_URL/login?error=<message>``.
    """
    if error:
        logger.info("[google] provider returned error=%s", error)
        return _frontend_error_redirect("Google sign-in was cancelled or failed. Please try again.")

    action = oauth_bridge.decode_state(state)
    try:
        identity = await google_oauth.fetch_google_identity(request)
        user, token = await oauth_bridge.reconcile(identity, action)
    except AppError as exc:
        logger.info("[google] sign-in rejected (%s): %s", exc.kind, exc.message)
        return _frontend_error_redirect(exc.message)
    except Exception:
        logger.exception("[google] unexpected failure completing sign-in")
        return _frontend_error_redirect(AuthenticationFailed().message)

    user_json = json.dumps(credential_store.public_user(user), separators=(",", ":"))
    target = f"{settings.frontend_url}/auth/callback?token={quote(token)}&user={quote(user_json)}"
    response = RedirectResponse(target, status_code=302)
    _set_token_cookie(response, token)
    return response
