"""Intervals API: CRUD for a user's busy intervals and per-occurrence exceptions of recurring ones."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from duosync.api.dependencies import get_interval_service
from duosync.api.schemas.intervals import (
    ExceptionCreate,
    ExceptionResponse,
    IntervalCreate,
    IntervalResponse,
    IntervalUpdate,
)
from duosync.services import IntervalService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["intervals"])


@router.get("/users/{user_id}/intervals", response_model=List[IntervalResponse])
async def list_intervals(
    user_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    skip: int = 0,
    limit: int = Query(100, le=500),
    svc: IntervalService = Depends(get_interval_service),
):
    return await svc.list_for_user(user_id, start=start, end=end, skip=skip, limit=limit)


@router.post("/users/{user_id}/intervals", response_model=IntervalResponse, status_code=201)
async def create_interval(
    user_id: int,
    body: IntervalCreate,
    svc: IntervalService = Depends(get_interval_service),
):
    return await svc.create(user_id, body.model_dump())


@router.get("/intervals/{interval_id}", response_model=IntervalResponse)
async def get_interval(
    interval_id: int,
    user_id: int = Query(..., gt=0),
    svc: IntervalService = Depends(get_interval_service),
):
    return await svc.get(interval_id, user_id)


@router.patch("/intervals/{interval_id}", response_model=IntervalResponse)
async def update_interval(
    interval_id: int,
    body: IntervalUpdate,
    user_id: int = Query(..., gt=0),
    svc: IntervalService = Depends(get_interval_service),
):
    return await svc.update(interval_id, user_id, body.model_dump(exclude_unset=True))


@router.delete("/intervals/{interval_id}", status_code=204)
async def delete_interval(
    interval_id: int,
    user_id: int = Query(..., gt=0),
    svc: IntervalService = Depends(get_interval_service),
):
    await svc.delete(interval_id, user_id)
    return Response(status_code=204)


@router.get("/intervals/{interval_id}/exceptions", response_model=List[ExceptionResponse])
async def list_exceptions(
    interval_id: int,
    user_id: int = Query(..., gt=0),
    svc: IntervalService = Depends(get_interval_service),
):
    return await svc.list_exceptions(interval_id, user_id)


@router.post("/intervals/{interval_id}/exceptions", response_model=ExceptionResponse, status_code=201)
async def add_exception(
    interval_id: int,
    body: ExceptionCreate,
    user_id: int = Query(..., gt=0),
    svc: IntervalService = Depends(get_interval_service),
):
    modified = body.modified_interval.model_dump(exclude_none=True) if body.modified_interval else None
    return await svc.add_exception(interval_id, user_id, body.exception_date, modified)


@router.delete("/intervals/{interval_id}/exceptions/{exception_id}", status_code=204)
async def delete_exception(
    interval_id: int,
    exception_id: int,
    user_id: int = Query(..., gt=0),
    svc: IntervalService = Depends(get_interval_service),
):
    await svc.delete_exception(interval_id, user_id, exception_id)
    return Response(status_code=204)
