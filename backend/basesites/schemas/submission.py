"""
BaseSites Backend: Submission Schemas
=====================================

What:  Request bodies and response shapes for the submission workflow.
Who:   User routes (/locations/submissions...) and admin routes
       (/admin/submissions...).

Response items flatten the ordered image list to `images: [url, ...]` and
carry the name of the targeted location for `update` submissions.
"""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from basesites.models.enums import SubmissionStatus, SubmissionType
from basesites.models.submission import Submission
from basesites.schemas.location import (
    LocationResponse,
    LocationSummary,
    SiteFields,
    SiteFieldsPatch,
)

ImageUrl = str


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class SubmissionCreate(SiteFields):
    """`existing_location_id` is required when `submission_type` is update."""

    submission_type: SubmissionType = SubmissionType.NEW
    existing_location_id: Optional[int] = Field(default=None, ge=1)
    image_urls: List[ImageUrl] = Field(default_factory=list)


class SubmissionUpdate(SiteFieldsPatch):
    """
    Partial edit by the owner. A present `image_urls` (even `[]`) replaces
    the whole image set.
    """

    image_urls: Optional[List[ImageUrl]] = None


class SubmissionReview(BaseModel):
    status: Literal["approved", "rejected"]
    admin_notes: Optional[str] = Field(default=None, max_length=2000)
    override_data: Optional[SiteFieldsPatch] = None


class SubmissionListQuery(BaseModel):
    status: Optional[SubmissionStatus] = None
    submission_type: Optional[SubmissionType] = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class AdminSubmissionListQuery(BaseModel):
    status: Optional[SubmissionStatus] = None
    submission_type: Optional[SubmissionType] = None
    user_id: Optional[UUID] = None
    sort_by: Literal["created_at", "name", "status"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class SubmissionResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    country: Optional[str] = None
    latitude: float
    longitude: float
    rock_drop_ft: Optional[int] = None
    total_height_ft: Optional[int] = None
    cliff_aspect: Optional[str] = None
    anchor_info: Optional[str] = None
    access_info: Optional[str] = None
    notes: Optional[str] = None
    opened_by_name: Optional[str] = None
    opened_date: Optional[str] = None
    video_link: Optional[str] = None
    status: SubmissionStatus
    submission_type: SubmissionType
    existing_location_id: Optional[int] = None
    admin_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[UUID] = None
    images: List[ImageUrl] = Field(default_factory=list, description="URLs in image_order")
    existing_location_name: Optional[str] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, submission: Submission) -> "SubmissionResponse":
        columns = {
            name: getattr(submission, name)
            for name in SubmissionResponse.model_fields
            if name not in _DERIVED_FIELDS
        }
        existing = submission.existing_location
        return cls(
            **columns,
            images=submission.image_urls,
            existing_location_name=existing.name if existing else None,
        )


# Response fields computed from relationships rather than read from columns
_DERIVED_FIELDS = ("images", "existing_location_name")


class SubmitterSummary(BaseModel):
    id: UUID
    email: Optional[str] = None
    full_name: Optional[str] = None


class AdminSubmissionResponse(SubmissionResponse):
    profile: Optional[SubmitterSummary] = None
    existing_location: Optional[LocationSummary] = None

    @classmethod
    def from_model(cls, submission: Submission) -> "AdminSubmissionResponse":
        base = SubmissionResponse.from_model(submission)
        submitter = submission.submitter
        return cls(
            **base.model_dump(),
            profile=(
                SubmitterSummary(id=submitter.id, email=submitter.email, full_name=submitter.name)
                if submitter
                else None
            ),
            existing_location=(
                LocationSummary.model_validate(submission.existing_location)
                if submission.existing_location
                else None
            ),
        )


class SubmissionCreated(BaseModel):
    id: UUID
    status: SubmissionStatus
    submission_type: SubmissionType


class SubmissionListResponse(BaseModel):
    submissions: List[SubmissionResponse]
    total_count: int
    has_more: bool


class StatusSummary(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class AdminSubmissionListResponse(BaseModel):
    submissions: List[AdminSubmissionResponse]
    total_count: int
    has_more: bool
    summary: StatusSummary


class ReviewResult(BaseModel):
    submission: SubmissionResponse
    created_location: Optional[LocationResponse] = None
    updated_location: Optional[LocationResponse] = None


class SubmissionLimits(BaseModel):
    max_pending_submissions: int
    current_pending_count: int
    max_daily_submissions: int
    current_daily_count: int
    can_submit: bool
    next_submission_available: str = Field(description='"now" or ISO timestamp of next local midnight')
