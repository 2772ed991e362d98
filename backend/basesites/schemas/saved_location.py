"""Favorites request/response models."""

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field

from basesites.schemas.location import LocationResponse


class SaveLocationRequest(BaseModel):
    location_id: int = Field(ge=1)


class SavedLocationCreated(BaseModel):
    save_id: UUID
    location_id: int
    saved_at: datetime


class SavedLocationItem(BaseModel):
    save_id: UUID
    saved_at: datetime
    location: LocationResponse


class SavedLocationListResponse(BaseModel):
    saved_locations: List[SavedLocationItem]
    total_count: int
    has_more: bool
