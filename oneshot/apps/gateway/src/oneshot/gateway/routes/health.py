"""健康检查路由

GET /health: Liveness，永远 200
GET /ready: Readiness -- SQLite、任务目录、磁盘空间；任一失败返回 503
"""

import shutil
from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Request
from oneshot.core.calendar import active_events
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


async def _check_sqlite(store_group) -> str:
    try:
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
    except Exception as e:
        log.warning("ready_check_failed", check="sqlite", error=str(e))
        return f"error: {e}"
    return "ok"


def _check_catalog(catalog) -> dict:
    if catalog is None or not catalog.tasks:
        return {"catalog": "error: catalog not loaded"}
    today = datetime.now(UTC).date()
    return {
        "catalog": "ok",
        "catalog_tasks": len(catalog.tasks),
        "active_seasonal_events": [
            e.event_key for e in active_events(catalog.seasonal_events.values(), today)
        ],
    }


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查

    active_seasonal_events 仅作展示，不影响就绪状态。
    """
    state = request.app.state
    checks: dict = {
        "sqlite": await _check_sqlite(getattr(state, "store_group", None)),
        **_check_catalog(getattr(state, "catalog", None)),
    }

    try:
        checks["disk_space_mb"] = shutil.disk_usage("/").free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0

    all_ok = (
        checks["sqlite"] == "ok"
        and checks["catalog"] == "ok"
        and checks["disk_space_mb"] > 0
    )
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ready" if all_ok else "not_ready", "checks": checks},
    )
