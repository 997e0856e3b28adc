# avara/models/api/user_response.py
"""
Featured teacher API response models.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from avara.models.domain.user_domain import FeaturedTeacher, PublicEvent, SelectionOutcome


class SelectionResponse(BaseModel):
    """Successful featured-teacher selection."""

    success: bool = Field(..., description="Always true")
    message: str = Field(..., description="Human readable outcome")
    method: str = Field(..., description="edge_function or direct_database")
    timestamp: datetime = Field(..., description="When the selection ran")

    @classmethod
    def from_outcome(cls, outcome: SelectionOutcome, timestamp: datetime) -> "SelectionResponse":
        return cls(
            success=True, message=outcome.message, method=outcome.method, timestamp=timestamp
        )


class SelectionFailureResponse(BaseModel):
    """Both selection paths failed."""

    success: bool = Field(default=False)
    error: str = Field(..., description="Summary of the failure")
    edge_function_error: str | None = Field(None, description="Remote function failure")
    direct_method_error: str | None = Field(None, description="Direct database failure")
    timestamp: datetime = Field(..., description="When the selection ran")

    @classmethod
    def from_outcome(
        cls, outcome: SelectionOutcome, timestamp: datetime
    ) -> "SelectionFailureResponse":
        return cls(
            error=outcome.message,
            edge_function_error=outcome.primary_error,
            direct_method_error=outcome.fallback_error,
            timestamp=timestamp,
        )


class FeaturedTeacherInfo(BaseModel):
    id: str
    name: str
    public_url: str
    bio: str | None = None
    profile_image_url: str | None = None
    yoga_styles: list[str] | None = None


class FeaturedTeacherResponse(BaseModel):
    teacher: FeaturedTeacherInfo = Field(..., description="The featured teacher's public profile")
    events: list[PublicEvent] = Field(..., description="Next public classes")

    @classmethod
    def from_domain(cls, featured: FeaturedTeacher) -> "FeaturedTeacherResponse":
        return cls(
            teacher=FeaturedTeacherInfo(**featured.model_dump(exclude={"events"})),
            events=featured.events,
        )
