"""TraceMiddleware -- 为用户级操作绑定 trace_id

trace_id 从路径 /api/users/{user_id}/... 或 /api/stream/users/{user_id}/...
中提取，与该用户进度事件的 trace_id 一致。
"""

import structlog
from oneshot.core.events import user_trace_id
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


def extract_user_id(path: str) -> str | None:
    """从请求路径提取 user_id"""
    parts = path.strip("/").split("/")
    for i, part in enumerate(parts):
        if part == "users" and i + 1 < len(parts) and parts[i + 1]:
            return parts[i + 1]
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """用户级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        user_id = extract_user_id(request.url.path)
        if user_id:
            structlog.contextvars.bind_contextvars(
                trace_id=user_trace_id(user_id),
                user_id=user_id,
            )

        return await call_next(request)
