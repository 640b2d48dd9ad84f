"""Pydantic schemas for the timeline API."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

SegmentCategoryName = Literal["match", "sleep", "busy", "other", "available"]


class SegmentSchema(BaseModel):
    start: str = Field(..., description="Local HH:mm in the response timezone")
    end: str = Field(..., description="Local HH:mm in the response timezone")
    category: SegmentCategoryName


class TimelineWarning(BaseModel):
    code: str
    message: str
    interval_id: Optional[int] = None


class TimelineResponse(BaseModel):
    date: str
    timezone: str
    segments: List[SegmentSchema] = Field(default_factory=list)
    warnings: List[TimelineWarning] = Field(default_factory=list)
