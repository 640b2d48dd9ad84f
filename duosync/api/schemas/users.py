"""Pydantic schemas for users."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator


def check_timezone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"unknown timezone {value!r}") from None
    return value


def normalize_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().lower()
    if "@" not in value:
        raise ValueError("email must contain '@'")
    return value


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=320)
    timezone: str = Field(default="UTC", max_length=64)

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, v: str) -> str:
        return check_timezone(v)

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=320)
    timezone: Optional[str] = Field(None, max_length=64)

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, v: Optional[str]) -> Optional[str]:
        return check_timezone(v)

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v)


class UserResponse(BaseModel):
    id: int
    name: str
    email: Optional[str]
    timezone: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
