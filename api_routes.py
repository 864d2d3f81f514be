# worklog_monitoring/api_routes.py
"""API route handlers for grouped work-log views and polling control"""
from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from datetime import datetime
from typing import Optional
import logging

from models import GroupDimension

logger = logging.getLogger(__name__)
router = APIRouter()


class VisibilityChange(BaseModel):
    """Foreground/background notification from the view layer"""
    hidden: bool


class DateOverride(BaseModel):
    """Day to inspect instead of today; null clears the override"""
    fecha: Optional[str] = None


def resolve_dimension(value: str) -> GroupDimension:
    try:
        return GroupDimension(value)
    except ValueError:
        allowed = ', '.join(d.value for d in GroupDimension)
        raise HTTPException(status_code=400, detail=f"Unknown dimension '{value}', expected one of: {allowed}")


def poll_status(request: Request) -> dict:
    return {**request.app.state.monitor.status(), **request.app.state.scheduler.status()}


@router.get("/api/groups", response_class=JSONResponse)
async def api_groups(request: Request, dimension: str = Query("operator")):
    """Ordered group view-models for one dimension"""
    group_dimension = resolve_dimension(dimension)
    monitor = request.app.state.monitor
    try:
        return {
            "dimension": group_dimension.value,
            "groups": monitor.group_views(group_dimension),
            "counts": monitor.counts(),
            "elapsed": monitor.elapsed().to_dict(),
            "status": poll_status(request)
        }
    except Exception as e:
        logger.error(f"API error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build groups")


@router.get("/api/groups/{dimension}/{key}", response_class=JSONResponse)
async def api_group_detail(request: Request, dimension: str, key: str):
    """One group with its member records and their time issues"""
    group_dimension = resolve_dimension(dimension)
    try:
        detail = request.app.state.monitor.group_detail(group_dimension, key)
    except Exception as e:
        logger.error(f"API error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build group detail")
    if detail is None:
        raise HTTPException(status_code=404, detail=f"No {group_dimension.value} group '{key}'")
    return detail


@router.get("/api/counts", response_class=JSONResponse)
async def api_counts(request: Request):
    """Distinct operators, tasks and orders, preferring backend figures"""
    return request.app.state.monitor.counts()


@router.get("/api/elapsed", response_class=JSONResponse)
async def api_elapsed(request: Request):
    """Effective elapsed shift time right now"""
    return request.app.state.monitor.elapsed().to_dict()


@router.post("/api/polling/enable", response_class=JSONResponse)
async def enable_polling(request: Request):
    request.app.state.scheduler.enable()
    return poll_status(request)


@router.post("/api/polling/disable", response_class=JSONResponse)
async def disable_polling(request: Request):
    request.app.state.scheduler.disable()
    return poll_status(request)


@router.post("/api/visibility", response_class=JSONResponse)
async def set_visibility(request: Request, change: VisibilityChange):
    request.app.state.visibility.set_hidden(change.hidden)
    return poll_status(request)


@router.put("/api/date-override", response_class=JSONResponse)
async def set_date_override(request: Request, override: DateOverride):
    """Inspect a prior day; every following poll carries the same `fecha`"""
    try:
        request.app.state.scheduler.apply_filters(override.fecha)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date '{override.fecha}', expected YYYY-MM-DD")
    logger.info(f"Date override requested: {override.fecha or 'today'}")
    return poll_status(request)


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    status = poll_status(request)
    return {
        "status": "degraded" if status["lastError"] else "healthy",
        "timestamp": datetime.now().isoformat(),
        "polling": status["state"],
        "rows": status["rows"],
        "last_error": status["lastError"]
    }
