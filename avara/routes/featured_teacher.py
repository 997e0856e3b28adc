"""
Featured teacher routes.

/api/set-featured-teacher is called by the scheduler (GET) or manually (POST).
/api/featured-teacher is public.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from avara.db.helpers import DatabaseError
from avara.infrastructure.observability.logging import get_logger
from avara.models.api.user_response import (
    FeaturedTeacherResponse,
    SelectionFailureResponse,
    SelectionResponse,
)
from avara.services.featured_teacher_service import featured_teacher_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["featured-teacher"])


@router.api_route("/set-featured-teacher", methods=["GET", "POST"], response_model=SelectionResponse)
async def set_featured_teacher():
    outcome = await featured_teacher_service.select_featured_teacher()
    timestamp = datetime.now(UTC)

    if not outcome.success:
        body = SelectionFailureResponse.from_outcome(outcome, timestamp)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json"),
        )

    return SelectionResponse.from_outcome(outcome, timestamp)


@router.get("/featured-teacher", response_model=FeaturedTeacherResponse)
async def get_featured_teacher():
    try:
        featured = await featured_teacher_service.get_featured_teacher()
    except DatabaseError as e:
        logger.error("Failed to load featured teacher", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error"
        ) from None

    if not featured:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No featured teacher")
    return FeaturedTeacherResponse.from_domain(featured)
