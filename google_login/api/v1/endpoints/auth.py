"""Google OAuth2 endpoints.

Notes:
- Requires `GOOGLE_CLIENT_ID` and `GOOGLE_CLIENT_SECRET` in the environment or `.env`.
- `GOOGLE_CALLBACK_URL` must match the redirect URI registered with Google.
"""
from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import RedirectResponse
import asyncio
import logging

from google_login import config
from google_login.db import mongo
from google_login.models.user import google_id_from_profile
from google_login.services.google_strategy import GoogleStrategy, AuthenticationError

logger = logging.getLogger(__name__)

router = APIRouter()

STATE_MAX_AGE = 600

_strategy = None


async def verify_google_user(access_token: str, refresh_token, profile: dict) -> dict:
    """Find or create the user for a Google profile."""
    try:
        google_id = google_id_from_profile(profile)
    except ValueError as e:
        raise AuthenticationError(str(e)) from e
    return await asyncio.to_thread(
        mongo.find_or_create_user, google_id, access_token, profile.get('email')
    )


def get_strategy() -> GoogleStrategy:
    """Return the configured Google strategy, building it on first use."""
    global _strategy
    if _strategy is None:
        _strategy = GoogleStrategy(
            client_id=config.get_env("GOOGLE_CLIENT_ID"),
            client_secret=config.get_env("GOOGLE_CLIENT_SECRET"),
            callback_url=config.GOOGLE_CALLBACK_URL,
            verify=verify_google_user,
            verify_ssl=not config.skip_ssl_verify(),
        )
    return _strategy


def _cookie_secure(request: Request) -> bool:
    return config.cookie_secure_forced() or request.url.scheme == 'https'


@router.get("/auth/google")
def google_login(request: Request):
    """Redirect user to Google's OAuth 2.0 consent screen."""
    strategy = get_strategy()
    state = strategy.new_state()
    response = RedirectResponse(strategy.authorization_url(state), status_code=302)
    response.set_cookie(
        key=config.STATE_COOKIE_NAME,
        value=state,
        httponly=True,
        samesite="lax",
        secure=_cookie_secure(request),
        max_age=STATE_MAX_AGE,
    )
    return response


@router.get("/auth/google/callback")
async def google_callback(request: Request):
    """Complete the OAuth2 flow, start a session and redirect home."""
    strategy = get_strategy()
    expected_state = request.cookies.get(config.STATE_COOKIE_NAME)

    try:
        user = await strategy.authenticate(dict(request.query_params), expected_state)
    except AuthenticationError as e:
        logger.warning(f"Google authentication failed: {e}")
        response = RedirectResponse(url=strategy.failure_redirect, status_code=302)
        response.delete_cookie(config.STATE_COOKIE_NAME)
        return response

    # Drop any session the browser already had before issuing a new one
    old_sid = request.cookies.get(config.SESSION_COOKIE_NAME)
    if old_sid:
        await asyncio.to_thread(mongo.delete_session, old_sid)

    sid = await asyncio.to_thread(mongo.create_session, user)
    logger.info(f"User {user.get('id')} logged in.")

    response = RedirectResponse(url=strategy.success_redirect, status_code=302)
    response.delete_cookie(config.STATE_COOKIE_NAME)
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=sid,
        httponly=True,
        samesite="lax",
        secure=_cookie_secure(request),
        max_age=config.SESSION_TTL_SECONDS,
    )
    return response


@router.get("/logout")
async def logout(request: Request):
    """Terminate the current session and redirect to the home page."""
    sid = request.cookies.get(config.SESSION_COOKIE_NAME)
    response = RedirectResponse(url="/", status_code=302)

    if sid:
        await asyncio.to_thread(mongo.delete_session, sid)
        user = getattr(request.state, 'user', None)
        logger.info(f"User {user.get('id') if user else None} logged out.")
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return response


@router.get("/auth/me")
def auth_me(request: Request):
    """Return the user held by the current session."""
    user = getattr(request.state, 'user', None)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return {"user": user}
