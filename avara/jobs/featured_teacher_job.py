"""
Featured teacher job: pick a new featured teacher.
"""

from avara.infrastructure.observability.logging import get_logger
from avara.services.featured_teacher_service import featured_teacher_service

logger = get_logger(__name__)


class FeaturedTeacherJobError(Exception):
    """Both selection paths failed."""


async def run_featured_teacher_job() -> None:
    outcome = await featured_teacher_service.select_featured_teacher()
    if not outcome.success:
        raise FeaturedTeacherJobError(
            f"{outcome.message}: edge function: {outcome.primary_error}; "
            f"direct database: {outcome.fallback_error}"
        )
    logger.info("Featured teacher job completed", method=outcome.method, message=outcome.message)
