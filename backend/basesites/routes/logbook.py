"""
BaseSites Backend: Logbook Routes
=================================

Personal jump log for the signed-in user. Entries are private; another
user's entry id behaves exactly like a missing one.
"""

from datetime import date
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.database import get_db_session
from basesites.middleware.auth import AuthenticatedUser, authenticate_user
from basesites.models.enums import ExitType
from basesites.schemas.common import ApiResponse, ErrorResponse
from basesites.schemas.logbook import (
    LogbookEntryCreate,
    LogbookEntryResponse,
    LogbookEntryUpdate,
    LogbookListResponse,
    LogbookQuery,
)
from basesites.services.logbook_service import logbook_service

router = APIRouter(prefix="/logbook", tags=["Logbook"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[LogbookEntryResponse],
    summary="Add a logbook entry",
)
async def create_entry(
    body: LogbookEntryCreate,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    entry = await logbook_service.create_entry(db, user.id, body)
    return ApiResponse(message="Logbook entry created successfully", data=entry)


@router.get(
    "",
    response_model=ApiResponse[LogbookListResponse],
    summary="List my logbook entries",
)
async def list_entries(
    search: Optional[str] = Query(default=None, description="Search location name and details"),
    exit_type: Optional[ExitType] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    order: Literal["asc", "desc"] = Query(default="desc", description="By jump date"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    params = LogbookQuery(
        search=search,
        exit_type=exit_type,
        date_from=date_from,
        date_to=date_to,
        order=order,
        limit=limit,
        offset=offset,
    )
    result = await logbook_service.list_entries(db, user.id, params)
    return ApiResponse(data=result)


@router.patch(
    "/{entry_id}",
    response_model=ApiResponse[LogbookEntryResponse],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update a logbook entry",
)
async def update_entry(
    entry_id: UUID,
    body: LogbookEntryUpdate,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    entry = await logbook_service.update_entry(db, user.id, entry_id, body)
    return ApiResponse(message="Logbook entry updated successfully", data=entry)


@router.delete(
    "/{entry_id}",
    response_model=ApiResponse[dict],
    responses={404: {"model": ErrorResponse}},
    summary="Delete a logbook entry",
)
async def delete_entry(
    entry_id: UUID,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    removed_id, location_name = await logbook_service.delete_entry(db, user.id, entry_id)
    return ApiResponse(
        message=f'Logbook entry "{location_name}" deleted successfully',
        data={"deleted_entry_id": str(removed_id)},
    )
