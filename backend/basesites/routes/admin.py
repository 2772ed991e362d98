"""
BaseSites Backend: Admin Routes
===============================

What:  Moderation of submissions and direct location management.
Who:   ADMIN or above; deleting a location requires SUPERUSER.
"""

import logging
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.database import get_db_session
from basesites.middleware.auth import AuthenticatedUser, require_role
from basesites.models.enums import SubmissionStatus, SubmissionType
from basesites.schemas.common import ApiResponse, ErrorResponse
from basesites.schemas.location import (
    DeletedLocation,
    LocationCreate,
    LocationResponse,
    LocationUpdate,
)
from basesites.schemas.submission import (
    AdminSubmissionListQuery,
    AdminSubmissionListResponse,
    ReviewResult,
    SubmissionReview,
)
from basesites.services.access_policy import Role
from basesites.services.location_service import location_service
from basesites.services.submission_service import submission_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        403: {"description": "Insufficient role", "model": ErrorResponse},
    },
)


# ══════════════════════════════════════════════════════════════════════════
# Submissions
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/submissions",
    response_model=ApiResponse[AdminSubmissionListResponse],
    summary="List all submissions with status totals",
)
async def list_submissions(
    status_filter: Optional[SubmissionStatus] = Query(default=None, alias="status"),
    submission_type: Optional[SubmissionType] = Query(default=None),
    user_id: Optional[UUID] = Query(default=None),
    sort_by: Literal["created_at", "name", "status"] = Query(default="created_at"),
    sort_order: Literal["asc", "desc"] = Query(default="desc"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    admin: AuthenticatedUser = Depends(require_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_db_session),
):
    params = AdminSubmissionListQuery(
        status=status_filter,
        submission_type=submission_type,
        user_id=user_id,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    result = await submission_service.list_all_submissions(db, params)
    return ApiResponse(data=result)


@router.patch(
    "/submissions/{submission_id}",
    response_model=ApiResponse[ReviewResult],
    responses={
        404: {"model": ErrorResponse},
        409: {"description": "Submission already reviewed", "model": ErrorResponse},
    },
    summary="Approve or reject a pending submission",
)
async def review_submission(
    submission_id: UUID,
    body: SubmissionReview,
    admin: AuthenticatedUser = Depends(require_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_db_session),
):
    result, message = await submission_service.review_submission(db, admin.id, submission_id, body)
    return ApiResponse(message=message, data=result)


# ══════════════════════════════════════════════════════════════════════════
# Locations
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/locations",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[LocationResponse],
    summary="Create a location directly",
)
async def create_location(
    body: LocationCreate,
    admin: AuthenticatedUser = Depends(require_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_db_session),
):
    location = await location_service.create_location(db, admin.id, body)
    return ApiResponse(message="Location created successfully", data=location)


@router.patch(
    "/locations/{location_id}",
    response_model=ApiResponse[LocationResponse],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update a location",
)
async def update_location(
    location_id: int,
    body: LocationUpdate,
    admin: AuthenticatedUser = Depends(require_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_db_session),
):
    location = await location_service.update_location(db, admin.id, location_id, body)
    return ApiResponse(message="Location updated successfully", data=location)


@router.delete(
    "/locations/{location_id}",
    response_model=ApiResponse[DeletedLocation],
    responses={404: {"model": ErrorResponse}},
    summary="Delete a location (superuser only)",
)
async def delete_location(
    location_id: int,
    superuser: AuthenticatedUser = Depends(require_role(Role.SUPERUSER)),
    db: AsyncSession = Depends(get_db_session),
):
    deleted = await location_service.delete_location(db, superuser.id, location_id)
    return ApiResponse(
        message=f'Location "{deleted.deleted_location.name}" deleted successfully',
        data=deleted,
    )
