"""
Calendar selection routes: which provider calendars are synced as feeds.
"""

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError as PydanticValidationError

from avara.auth.verify import current_user
from avara.db.helpers import DatabaseError
from avara.errors import AvaraError
from avara.infrastructure.observability.logging import get_logger
from avara.models.api.calendar_request import CalendarSelectionRequest
from avara.models.api.calendar_response import (
    CalendarItemResponse,
    CalendarSelectionResponse,
    SaveSelectionResponse,
)
from avara.models.domain.user_domain import AuthenticatedUser
from avara.routes.errors import to_http_exception
from avara.services.calendar.selection_service import calendar_selection_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api/calendar-selection", tags=["calendar-selection"])


@router.get("", response_model=CalendarSelectionResponse)
async def get_calendar_selection(user: AuthenticatedUser = Depends(current_user)):
    """
    List the user's Google calendars with their selected flags.

    Failures are reported in the error field with an empty list, never as an
    HTTP error, so the page can render a reconnect hint.
    """
    result = await calendar_selection_service.fetch_oauth_calendars(user.id)
    return CalendarSelectionResponse(
        calendars=[CalendarItemResponse.from_domain(c) for c in result.calendars],
        error=result.error,
    )


@router.post("", response_model=SaveSelectionResponse)
async def save_calendar_selection(
    payload: dict = Body(...), user: AuthenticatedUser = Depends(current_user)
):
    """
    Replace the synced calendars with the given selection.

    Raises:
        400: Malformed selections
        404: No Google Calendar integration
        500: Storage or configuration failure
    """
    try:
        request = CalendarSelectionRequest.model_validate(payload)
    except PydanticValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid selections"
        ) from None

    try:
        selected_count = await calendar_selection_service.save_calendar_selection(
            user.id, [item.to_domain() for item in request.selections]
        )
    except (AvaraError, DatabaseError) as e:
        logger.error(
            "Failed to save calendar selection",
            user_id=user.id,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise to_http_exception(e) from None

    return SaveSelectionResponse(
        success=True,
        selected_count=selected_count,
        message=f"Successfully selected {selected_count} calendar(s) for sync",
    )
