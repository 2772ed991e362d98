"""
BaseSites Backend: Submission Routes (contributor side)
=======================================================

What:  Create, list, read, edit and withdraw the caller's own location
       submissions, and report their quota usage.
Who:   Any authenticated user. Ownership is enforced in the service; other
       users' submissions read as 404.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.database import get_db_session
from basesites.middleware.auth import AuthenticatedUser, authenticate_user
from basesites.models.enums import SubmissionStatus, SubmissionType
from basesites.schemas.common import ApiResponse, ErrorResponse
from basesites.schemas.submission import (
    SubmissionCreate,
    SubmissionCreated,
    SubmissionLimits,
    SubmissionListQuery,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionUpdate,
)
from basesites.services.quota_service import quota_tracker
from basesites.services.submission_service import submission_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/locations", tags=["Submissions"])


@router.post(
    "/submissions",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[SubmissionCreated],
    responses={
        400: {"description": "Invalid submission", "model": ErrorResponse},
        404: {"description": "Target location not found", "model": ErrorResponse},
        429: {"description": "Pending or daily quota reached", "model": ErrorResponse},
    },
    summary="Submit a new location or an update to an existing one",
)
async def create_submission(
    body: SubmissionCreate,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    created = await submission_service.create_submission(db, user.id, body)
    return ApiResponse(message="Location submission created successfully", data=created)


@router.get(
    "/submissions",
    response_model=ApiResponse[SubmissionListResponse],
    summary="List my submissions",
)
async def list_my_submissions(
    status_filter: Optional[SubmissionStatus] = Query(default=None, alias="status"),
    submission_type: Optional[SubmissionType] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    params = SubmissionListQuery(
        status=status_filter, submission_type=submission_type, limit=limit, offset=offset
    )
    result = await submission_service.list_user_submissions(db, user.id, params)
    return ApiResponse(data=result)


@router.get(
    "/submissions/{submission_id}",
    response_model=ApiResponse[SubmissionResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get one of my submissions",
)
async def get_my_submission(
    submission_id: UUID,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await submission_service.get_submission(db, user.id, submission_id)
    return ApiResponse(data=result)


@router.patch(
    "/submissions/{submission_id}",
    response_model=ApiResponse[SubmissionResponse],
    responses={
        400: {"model": ErrorResponse},
        404: {"description": "Missing, not owned, or no longer pending", "model": ErrorResponse},
    },
    summary="Edit a pending submission",
)
async def update_my_submission(
    submission_id: UUID,
    body: SubmissionUpdate,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await submission_service.update_submission(db, user.id, submission_id, body)
    return ApiResponse(message="Submission updated successfully", data=result)


@router.delete(
    "/submissions/{submission_id}",
    response_model=ApiResponse[None],
    responses={404: {"description": "Missing, not owned, or no longer pending", "model": ErrorResponse}},
    summary="Withdraw a pending submission",
)
async def delete_my_submission(
    submission_id: UUID,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    await submission_service.delete_submission(db, user.id, submission_id)
    return ApiResponse(message="Submission deleted successfully")


@router.get(
    "/submission-limits",
    response_model=ApiResponse[SubmissionLimits],
    summary="Current submission quota usage",
)
async def get_submission_limits(
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await quota_tracker.limits(db, user.id)
    return ApiResponse(data=result)
