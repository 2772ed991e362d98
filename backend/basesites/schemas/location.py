"""
BaseSites Backend: Location Schemas
===================================

What:  Site field validation shared by locations and submissions, plus the
       location request/response models.

Two shapes of the same fields:
    SiteFields       every required field present (create)
    SiteFieldsPatch  any subset (admin update, owner edit, review override)

Patch models are read with `model_dump(exclude_unset=True)`: a key the
client sent wins even when its value is falsy (`0`, `""`) or `null`.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, Field, TypeAdapter, field_validator, model_validator

_URL = TypeAdapter(AnyHttpUrl)

# Fields that may be omitted from a patch but never cleared by it
NON_NULLABLE_SITE_FIELDS = ("name", "latitude", "longitude")


def _check_video_link(value: Optional[str]) -> Optional[str]:
    """Accepts an http(s) URL or an empty string; returns the original text."""
    if value is None or value == "":
        return value
    _URL.validate_python(value)
    return value


class SiteFields(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    country: Optional[str] = Field(default=None, max_length=100)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    rock_drop_ft: Optional[int] = Field(default=None, ge=1)
    total_height_ft: Optional[int] = Field(default=None, ge=1)
    cliff_aspect: Optional[str] = Field(default=None, max_length=50)
    anchor_info: Optional[str] = None
    access_info: Optional[str] = None
    notes: Optional[str] = None
    opened_by_name: Optional[str] = Field(default=None, max_length=255)
    opened_date: Optional[str] = Field(default=None, max_length=50)
    video_link: Optional[str] = None

    @field_validator("video_link")
    @classmethod
    def validate_video_link(cls, v: Optional[str]) -> Optional[str]:
        return _check_video_link(v)


class SiteFieldsPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    country: Optional[str] = Field(default=None, max_length=100)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    rock_drop_ft: Optional[int] = Field(default=None, ge=1)
    total_height_ft: Optional[int] = Field(default=None, ge=1)
    cliff_aspect: Optional[str] = Field(default=None, max_length=50)
    anchor_info: Optional[str] = None
    access_info: Optional[str] = None
    notes: Optional[str] = None
    opened_by_name: Optional[str] = Field(default=None, max_length=255)
    opened_date: Optional[str] = Field(default=None, max_length=50)
    video_link: Optional[str] = None

    @field_validator("video_link")
    @classmethod
    def validate_video_link(cls, v: Optional[str]) -> Optional[str]:
        return _check_video_link(v)

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for field in NON_NULLABLE_SITE_FIELDS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def site_changes(self) -> dict:
        """Only the keys the client actually sent."""
        return self.model_dump(
            include=set(SiteFieldsPatch.model_fields), exclude_unset=True
        )


# ── Requests ──────────────────────────────────────────────────────────────


class LocationCreate(SiteFields):
    is_hidden: bool = False


class LocationUpdate(SiteFieldsPatch):
    is_hidden: Optional[bool] = None

    @field_validator("is_hidden")
    @classmethod
    def validate_is_hidden(cls, v: Optional[bool]) -> Optional[bool]:
        if v is None:
            raise ValueError("is_hidden cannot be null")
        return v


class LocationQuery(BaseModel):
    country: Optional[str] = None
    min_height: Optional[int] = Field(default=None, ge=0)
    max_height: Optional[int] = Field(default=None, ge=0)
    search: Optional[str] = None


# ── Responses ─────────────────────────────────────────────────────────────


class LocationResponse(BaseModel):
    id: int
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
    is_hidden: bool = False
    created_by: Optional[UUID] = None
    updated_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LocationSummary(BaseModel):
    id: int
    name: str
    country: Optional[str] = None

    model_config = {"from_attributes": True}


class DeletedLocation(BaseModel):
    deleted_location: LocationSummary


class LocationListResponse(BaseModel):
    locations: List[LocationResponse]
    total_count: int
