"""Timeline API: single-user (or pooled) day timeline and the shared comparison."""

import asyncio
import datetime as _dt
import logging
from typing import Awaitable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from duosync.api.dependencies import get_timeline_service
from duosync.api.limiter import limiter, timeline_rate_limit
from duosync.api.schemas.timeline import SegmentSchema, TimelineResponse, TimelineWarning
from duosync.core.exceptions import TimelineTimeoutError
from duosync.services import TimelineService
from duosync.timeline import Timeline
from duosync.timeline.window import parse_day

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/timeline", tags=["timeline"])


def _parse_date(value: str) -> _dt.date:
    try:
        return parse_day(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date {value!r}; expected YYYY-MM-DD")


def _parse_user_ids(raw: str, field: str = "user_ids") -> List[int]:
    ids: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit() or int(part) <= 0:
            raise HTTPException(status_code=400, detail=f"Invalid user id {part!r}")
        if int(part) not in ids:
            ids.append(int(part))
    if not ids:
        raise HTTPException(status_code=400, detail=f"{field} must list at least one id")
    return ids


async def _bounded(service: TimelineService, work: Awaitable[Timeline]) -> Timeline:
    timeout = service.config.timeout_seconds
    try:
        return await asyncio.wait_for(work, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Timeline computation exceeded %.1fs", timeout)
        raise TimelineTimeoutError(
            f"Timeline computation exceeded {timeout:g}s", details={"timeout_seconds": timeout}
        ) from None


def _to_response(timeline: Timeline) -> TimelineResponse:
    return TimelineResponse(
        date=timeline.date.isoformat(),
        timezone=timeline.timezone,
        segments=[SegmentSchema(**s.to_dict()) for s in timeline.segments],
        warnings=[
            TimelineWarning(
                code="RECURRENCE_INVALID",
                message=f"Interval {interval_id} has an invalid recurrence rule and was ignored",
                interval_id=interval_id,
            )
            for interval_id in timeline.invalid_rule_ids
        ],
    )


@router.get("", response_model=TimelineResponse)
@limiter.limit(timeline_rate_limit)
async def get_timeline(
    request: Request,
    date: str = Query(..., description="YYYY-MM-DD (UTC day)"),
    user_ids: str = Query(..., description="Comma-separated user ids; several ids are pooled"),
    timezone: Optional[str] = Query(None, description="IANA zone for display; defaults to the first user's"),
    service: TimelineService = Depends(get_timeline_service),
):
    day = _parse_date(date)
    ids = _parse_user_ids(user_ids)
    timeline = await _bounded(service, service.get_timeline(day, ids, timezone))
    return _to_response(timeline)


@router.get("/compare", response_model=TimelineResponse)
@limiter.limit(timeline_rate_limit)
async def compare_timelines(
    request: Request,
    date: str = Query(..., description="YYYY-MM-DD (UTC day)"),
    current_user_id: int = Query(..., gt=0),
    other_user_ids: str = Query(..., description="Comma-separated ids of the users to compare against"),
    timezone: Optional[str] = Query(None, description="IANA zone for display; defaults to the current user's"),
    service: TimelineService = Depends(get_timeline_service),
):
    """Shared view: sleep > other (current user busy) > match (everyone free) > available."""
    day = _parse_date(date)
    others = _parse_user_ids(other_user_ids, field="other_user_ids")
    if current_user_id in others:
        raise HTTPException(status_code=400, detail="other_user_ids must not include current_user_id")
    timeline = await _bounded(service, service.compare(day, current_user_id, others, timezone))
    return _to_response(timeline)
