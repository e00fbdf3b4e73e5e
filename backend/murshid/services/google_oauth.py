# murshid/services/google_oauth.py
"""
Google OpenID Connect client (Authlib, Starlette integration).

The client keeps its per-login state in the Starlette session, so the app
must run SessionMiddleware.
"""
import logging

from authlib.integrations.starlette_client import OAuth, OAuthError
from starlette.requests import Request

from murshid.config import settings
from murshid.core.errors import AuthenticationFailed, ValidationError
from murshid.services.oauth_bridge import GoogleIdentity

logger = logging.getLogger(__name__)

oauth = OAuth()
oauth.register(
    name="google",
    client_id=settings.google_client_id,
    client_secret=settings.google_client_secret,
    server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
    client_kwargs={"scope": "openid email profile"},
)


def callback_url(request: Request) -> str:
    return settings.google_callback_url or str(request.url_for("google_callback"))


async def authorize_redirect(request: Request, state: str):
    """Redirect the browser to Google's consent screen."""
    return await oauth.google.authorize_redirect(
        request,
        callback_url(request),
        state=state,
        prompt="select_account",
    )


async def fetch_google_identity(request: Request) -> GoogleIdentity:
    """Exchange the callback's authorization code for a verified identity."""
    try:
        token = await oauth.google.authorize_access_token(request)
    except OAuthError as exc:
        logger.warning("[google] token exchange failed: %s", exc.error)
        raise AuthenticationFailed("Google authentication failed. Please try again.") from exc

    info = token.get("userinfo") or {}
    email = (info.get("email") or "").lower()
    if not email:
        raise ValidationError("No email found in Google profile")
    if info.get("email_verified") is False:
        raise AuthenticationFailed("Your Google email address is not verified.")
    return GoogleIdentity(
        external_id=str(info.get("sub")),
        email=email,
        display_name=info.get("name") or "",
    )
