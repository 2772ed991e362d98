"""
BaseSites Backend: Logbook Schemas
==================================

Jump dates travel as `YYYY-MM-DD`; pydantic parses them into `date`.
"""

from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from basesites.models.enums import ExitType


class LogbookEntryCreate(BaseModel):
    location_name: str = Field(min_length=1, max_length=255)
    exit_type: Optional[ExitType] = None
    delay_seconds: Optional[int] = Field(default=None, ge=0)
    jump_date: Optional[date] = None
    details: Optional[str] = Field(default=None, max_length=1000)


class LogbookEntryUpdate(BaseModel):
    location_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    exit_type: Optional[ExitType] = None
    delay_seconds: Optional[int] = Field(default=None, ge=0)
    jump_date: Optional[date] = None
    details: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("location_name")
    @classmethod
    def location_name_not_null(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("location_name cannot be null")
        return v


class LogbookQuery(BaseModel):
    search: Optional[str] = None
    exit_type: Optional[ExitType] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    order: Literal["asc", "desc"] = "desc"
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class LogbookEntryResponse(BaseModel):
    id: UUID
    user_id: UUID
    location_name: str
    exit_type: Optional[ExitType] = None
    delay_seconds: Optional[int] = None
    jump_date: Optional[date] = None
    details: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LogbookListResponse(BaseModel):
    entries: List[LogbookEntryResponse]
    total_count: int
    has_more: bool
