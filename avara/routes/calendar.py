"""
Manual calendar sync and dedicated yoga calendar setup.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from avara.auth.verify import current_user
from avara.db.helpers import DatabaseError
from avara.errors import AvaraError
from avara.infrastructure.observability.logging import get_logger
from avara.models.api.calendar_request import CreateYogaCalendarRequest
from avara.models.api.calendar_response import CalendarSyncResponse, CreateYogaCalendarResponse
from avara.models.domain.user_domain import AuthenticatedUser
from avara.routes.errors import to_http_exception
from avara.services.calendar.selection_service import calendar_selection_service
from avara.services.sync.sync_orchestrator import sync_orchestrator

logger = get_logger(__name__)

router = APIRouter(prefix="/api/calendar", tags=["calendar"])


@router.post("/sync", response_model=CalendarSyncResponse)
async def sync_calendar(user: AuthenticatedUser = Depends(current_user)):
    """
    Sync the caller's most recently created feed over the default window.

    Raises:
        401: Not signed in
        404: No calendar feed
        500: The sync function failed
    """
    try:
        feed_id, result = await sync_orchestrator.sync_latest_feed(user.id)
    except (AvaraError, DatabaseError) as e:
        raise to_http_exception(e) from None

    if not result.success:
        logger.error("Calendar sync failed", user_id=user.id, feed_id=feed_id, error=result.error)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to sync calendar"
        )

    return CalendarSyncResponse(
        success=True, message="Calendar sync triggered successfully", feed_id=feed_id
    )


@router.post("/create-yoga-calendar", response_model=CreateYogaCalendarResponse)
async def create_yoga_calendar(
    request: CreateYogaCalendarRequest, user: AuthenticatedUser = Depends(current_user)
):
    """
    Find or create the caller's dedicated yoga calendar in Google and make it
    their only feed.

    Raises:
        400: Unknown sync_approach
        401: Not signed in, or the Google authorization expired
        404: Google Calendar not connected
        502: Google Calendar request failed
    """
    try:
        result = await calendar_selection_service.create_yoga_calendar(
            user.id, time_zone=request.time_zone, sync_approach=request.sync_approach
        )
    except (AvaraError, DatabaseError) as e:
        logger.error(
            "Failed to set up yoga calendar",
            user_id=user.id,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise to_http_exception(e) from None

    return CreateYogaCalendarResponse.from_domain(result)
