"""任务目录查询路由

GET /api/catalog/tasks: 全部任务定义（拓扑序，camelCase）
GET /api/catalog/seasonal-events: 季节事件，?on=YYYY-MM-DD 时仅返回当天生效的事件
GET /api/catalog/achievements: 成就定义
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from oneshot.core.calendar import is_event_active

from ..deps import get_catalog

router = APIRouter()


@router.get("/api/catalog/tasks")
async def list_catalog_tasks(catalog=Depends(get_catalog)):
    """全部任务定义，依赖在前"""
    return {
        "tasks": [
            t.model_dump(mode="json", by_alias=True) for t in catalog.ordered_tasks()
        ]
    }


@router.get("/api/catalog/seasonal-events")
async def list_seasonal_events(
    on: date | None = Query(default=None, description="只返回该日期生效的事件"),
    sport: str | None = Query(default=None),
    role: str | None = Query(default=None),
    catalog=Depends(get_catalog),
):
    """季节事件列表"""
    events = list(catalog.seasonal_events.values())
    if on is not None:
        events = [e for e in events if is_event_active(e, on, sport, role)]
    return {
        "on": on.isoformat() if on is not None else None,
        "seasonal_events": [e.model_dump(mode="json", by_alias=True) for e in events],
    }


@router.get("/api/catalog/achievements")
async def list_achievements(catalog=Depends(get_catalog)):
    return {
        "achievements": [
            a.model_dump(mode="json", by_alias=True)
            for a in catalog.achievements.values()
        ]
    }
