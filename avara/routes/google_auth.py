"""
Google Calendar OAuth routes: connect, callback, disconnect.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse

from avara.auth.verify import AuthContext, current_user, get_auth_context
from avara.config import settings
from avara.errors import AvaraError, Unauthenticated
from avara.infrastructure.observability.logging import get_logger
from avara.models.domain.user_domain import AuthenticatedUser
from avara.routes.errors import to_http_exception
from avara.services.calendar_connection_service import (
    CalendarConnectionError,
    calendar_connection_service,
)
from avara.services.oauth_state_service import STATE_COOKIE_NAME, STATE_TTL_SECONDS

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth/google", tags=["google-auth"])

ADD_CALENDAR_PATH = "/app/add-calendar"
SUCCESS_QUERY = "success=oauth_connected&step=create_yoga_calendar"


def _redirect(path_and_query: str) -> RedirectResponse:
    response = RedirectResponse(
        f"{settings.app_base_url()}{path_and_query}", status_code=status.HTTP_302_FOUND
    )
    response.delete_cookie(STATE_COOKIE_NAME)
    return response


@router.get("/calendar")
async def start_calendar_oauth(user: AuthenticatedUser = Depends(current_user)):
    """
    Redirect to Google's consent screen.

    The signed state goes into an httpOnly cookie and is checked again in the
    callback.

    Raises:
        401: Not signed in
        500: Google OAuth not configured
    """
    try:
        oauth_url, state = calendar_connection_service.initiate_oauth_flow(user.id)
    except AvaraError as e:
        logger.error("Failed to start calendar OAuth", user_id=user.id, error=e.message)
        raise to_http_exception(e) from None

    response = RedirectResponse(oauth_url, status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        STATE_COOKIE_NAME,
        state,
        max_age=STATE_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "production",
    )
    return response


@router.get("/callback")
async def calendar_oauth_callback(
    request: Request,
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    auth: AuthContext = Depends(get_auth_context),
):
    """Finish the consent flow and send the browser back to the add-calendar page."""
    try:
        user = auth.current_user()
    except Unauthenticated:
        return _redirect("/auth/sign-in?error=unauthorized")

    try:
        await calendar_connection_service.complete_oauth_flow(
            user.id,
            code=code,
            state=state,
            cookie_state=request.cookies.get(STATE_COOKIE_NAME),
            provider_error=error,
        )
    except CalendarConnectionError as e:
        return _redirect(f"{ADD_CALENDAR_PATH}?error={e.error_code}")
    except Exception as e:
        logger.error(
            "Unexpected error in calendar OAuth callback",
            user_id=user.id,
            error=str(e),
            error_type=type(e).__name__,
        )
        return _redirect(f"{ADD_CALENDAR_PATH}?error=internal_error")

    return _redirect(f"{ADD_CALENDAR_PATH}?{SUCCESS_QUERY}")


@router.delete("/calendar")
async def disconnect_calendar(user: AuthenticatedUser = Depends(current_user)):
    """Remove the stored Google Calendar integration."""
    try:
        deleted = await calendar_connection_service.disconnect(user.id)
    except Exception as e:
        logger.error("Failed to disconnect calendar", user_id=user.id, error=str(e))
        raise to_http_exception(e) from None

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="OAuth integration not found"
        )
    return {"success": True, "message": "Google Calendar disconnected"}
