"""
Featured teacher selection.

Runs the hosted set-featured-teacher function first and falls back to doing
the selection directly against the database when that fails.

The fallback is not transactional: flags are cleared, candidates evaluated
and the winner flagged in separate statements. Two runs overlapping can leave
zero or two featured users until the next run. The job is scheduled
infrequently, so this is accepted rather than locked.
"""

import random
from collections.abc import Callable
from datetime import UTC, datetime

from avara.db.helpers import DatabaseError
from avara.errors import AvaraError
from avara.infrastructure.observability.logging import get_logger
from avara.models.domain.user_domain import (
    FEATURED_MIN_UPCOMING_EVENTS,
    FeaturedCandidate,
    FeaturedTeacher,
    SelectionAttempt,
    SelectionOutcome,
)
from avara.repositories.user_repository import UserRepository, user_repository
from avara.services.remote_functions import RemoteFunctionsClient, remote_functions

logger = get_logger(__name__)

FEATURED_FUNCTION_NAME = "set-featured-teacher"
NO_ELIGIBLE_USERS_MESSAGE = "No eligible users found with sufficient upcoming events"
BOTH_METHODS_FAILED_MESSAGE = "Both Edge Function and direct database methods failed"


class FeaturedTeacherService:
    def __init__(
        self,
        users: UserRepository = user_repository,
        functions: RemoteFunctionsClient = remote_functions,
        chooser: Callable[[list], object] = random.choice,
    ):
        self.users = users
        self.functions = functions
        self.chooser = chooser

    async def _via_remote_function(self) -> SelectionAttempt:
        try:
            data = await self.functions.invoke(FEATURED_FUNCTION_NAME)
        except AvaraError as e:
            return SelectionAttempt(success=False, message=e.message)
        except Exception as e:
            return SelectionAttempt(success=False, message=f"Unexpected error: {e}")

        if data.get("success") is False:
            return SelectionAttempt(
                success=False, message=data.get("error") or "Edge function reported failure"
            )
        return SelectionAttempt(
            success=True, message=data.get("message") or "Featured teacher updated"
        )

    async def _eligible_candidates(self, now: datetime) -> list[FeaturedCandidate]:
        candidates = await self.users.list_featured_candidates()

        eligible = []
        for candidate in candidates:
            try:
                count = await self.users.count_upcoming_public_events(candidate.id, now)
            except DatabaseError as e:
                logger.warning(
                    "Skipping featured candidate, event count failed",
                    user_id=candidate.id,
                    error=str(e),
                )
                continue

            scored = candidate.model_copy(update={"upcoming_public_events": count})
            if scored.is_eligible():
                eligible.append(scored)

        logger.info(
            "Featured candidates evaluated",
            candidate_count=len(candidates),
            eligible_count=len(eligible),
        )
        return eligible

    async def _via_database(self) -> SelectionAttempt:
        try:
            await self.users.clear_featured_flags()

            eligible = await self._eligible_candidates(datetime.now(UTC))
            if not eligible:
                return SelectionAttempt(success=False, message=NO_ELIGIBLE_USERS_MESSAGE)

            chosen = self.chooser(eligible)
            await self.users.set_featured(chosen.id)
        except DatabaseError as e:
            return SelectionAttempt(success=False, message=str(e))
        except Exception as e:
            logger.error(
                "Unexpected error in direct featured selection",
                error=str(e),
                error_type=type(e).__name__,
            )
            return SelectionAttempt(success=False, message=f"Unexpected error: {e}")

        return SelectionAttempt(
            success=True,
            message=(
                f"Successfully set {chosen.name} as featured teacher "
                f"({len(eligible)} eligible users)"
            ),
        )

    async def select_featured_teacher(self) -> SelectionOutcome:
        """
        Pick a featured teacher, remote function first, direct database second.

        Returns:
            SelectionOutcome: method names the path that succeeded; when both
            fail, primary_error and fallback_error carry each path's message.
        """
        primary = await self._via_remote_function()
        if primary.success:
            logger.info("Featured teacher set via edge function", message=primary.message)
            return SelectionOutcome(success=True, message=primary.message, method="edge_function")

        logger.warning("Edge function failed, trying direct database", error=primary.message)

        fallback = await self._via_database()
        if fallback.success:
            logger.info("Featured teacher set via direct database", message=fallback.message)
            return SelectionOutcome(
                success=True,
                message=fallback.message,
                method="direct_database",
                primary_error=primary.message,
            )

        logger.error(
            "Featured teacher selection failed",
            edge_function_error=primary.message,
            direct_method_error=fallback.message,
        )
        return SelectionOutcome(
            success=False,
            message=BOTH_METHODS_FAILED_MESSAGE,
            primary_error=primary.message,
            fallback_error=fallback.message,
        )

    async def get_featured_teacher(self) -> FeaturedTeacher | None:
        """The featured user with their next public events, None if they no longer qualify."""
        row = await self.users.get_featured_user()
        if not row:
            return None

        events = await self.users.list_upcoming_public_events(
            row["id"], datetime.now(UTC), FEATURED_MIN_UPCOMING_EVENTS
        )
        if len(events) < FEATURED_MIN_UPCOMING_EVENTS:
            return None

        return FeaturedTeacher(**row, events=events)


featured_teacher_service = FeaturedTeacherService()
