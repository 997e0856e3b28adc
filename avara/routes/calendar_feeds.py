"""
Calendar feed routes: list, create, update, delete and bulk sync.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from avara.auth.verify import current_user
from avara.db.helpers import DatabaseError
from avara.errors import AvaraError
from avara.infrastructure.observability.logging import get_logger
from avara.models.api.calendar_request import CreateFeedRequest, UpdateSyncApproachRequest
from avara.models.api.calendar_response import (
    CreateFeedResponse,
    FeedListResponse,
    FeedResponse,
    LatestFeedResponse,
    SyncAllResponse,
    SyncResultResponse,
    UpdateFeedResponse,
)
from avara.models.domain.user_domain import AuthenticatedUser
from avara.routes.errors import to_http_exception
from avara.services.feeds.feed_registry import feed_registry
from avara.services.sync.sync_orchestrator import sync_orchestrator

logger = get_logger(__name__)

router = APIRouter(prefix="/api/calendar-feeds", tags=["calendar-feeds"])


@router.get("", response_model=FeedListResponse)
async def list_feeds(user: AuthenticatedUser = Depends(current_user)):
    try:
        feeds = await feed_registry.list_feeds(user.id)
    except DatabaseError as e:
        logger.error("Failed to list feeds", user_id=user.id, error=str(e))
        raise to_http_exception(e) from None
    return FeedListResponse(feeds=[FeedResponse.from_domain(feed) for feed in feeds])


@router.post("", response_model=CreateFeedResponse, status_code=status.HTTP_201_CREATED)
async def create_feed(
    request: CreateFeedRequest, user: AuthenticatedUser = Depends(current_user)
):
    """
    Create a feed. ICS feeds are synced once immediately; a failed first sync
    is reported in syncResult and does not undo the creation.
    """
    try:
        result = await feed_registry.create_feed(user.id, request.to_domain())
    except (AvaraError, DatabaseError) as e:
        logger.warning("Failed to create feed", user_id=user.id, error=str(e))
        raise to_http_exception(e) from None

    return CreateFeedResponse(
        feed=FeedResponse.from_domain(result.feed),
        sync_result=(
            SyncResultResponse.from_domain(result.sync_result) if result.sync_result else None
        ),
    )


@router.get("/latest", response_model=LatestFeedResponse)
async def get_latest_feed(
    user_id: str | None = Query(None, alias="userId"),
    user: AuthenticatedUser = Depends(current_user),
):
    """
    Most recently created feed id for a user.

    Raises:
        400: userId missing
        404: The user has no feed
    """
    if not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="userId is required")

    try:
        feed_id = await feed_registry.get_latest_feed_id(user_id)
    except (AvaraError, DatabaseError) as e:
        raise to_http_exception(e) from None
    return LatestFeedResponse(feed_id=feed_id)


@router.post("/sync", response_model=SyncAllResponse)
async def sync_all_feeds(user: AuthenticatedUser = Depends(current_user)):
    """Sync every feed of the caller. Always 200; partial failure shows in the counts."""
    summary = await sync_orchestrator.sync_all_feeds_for_user(user.id)
    return SyncAllResponse(
        success=True,
        successful_syncs=summary.successful_syncs,
        failed_syncs=summary.failed_syncs,
        total_feeds=summary.total_feeds,
        total_events=summary.total_events,
    )


@router.patch("/{feed_id}", response_model=UpdateFeedResponse)
async def update_feed(
    feed_id: str,
    request: UpdateSyncApproachRequest,
    user: AuthenticatedUser = Depends(current_user),
):
    try:
        feed = await feed_registry.update_sync_approach(feed_id, user.id, request.sync_approach)
    except (AvaraError, DatabaseError) as e:
        logger.warning("Failed to update sync approach", user_id=user.id, feed_id=feed_id, error=str(e))
        raise to_http_exception(e) from None

    return UpdateFeedResponse(
        success=True,
        feed=FeedResponse.from_domain(feed),
        message=f"Sync approach updated to {feed.sync_approach.describe()}",
    )


@router.delete("/{feed_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_feed(feed_id: str, user: AuthenticatedUser = Depends(current_user)):
    try:
        await feed_registry.delete_feed(feed_id, user.id)
    except (AvaraError, DatabaseError) as e:
        raise to_http_exception(e) from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)
