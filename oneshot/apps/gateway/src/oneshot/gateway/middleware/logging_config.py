"""structlog 配置模块

ONESHOT_LOG_FORMAT=json 输出结构化 JSON，其余值（默认 dev）输出可读控制台格式。
LOGFIRE_SEND_TO_LOGFIRE=true 时额外接入 Logfire。
"""

import logging
import os

import structlog

# 第三方库日志降到 WARNING，避免淹没评估日志
_QUIET_LOGGERS = ("aiosqlite", "uvicorn.access", "httpx")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging() -> None:
    """初始化 structlog，并将标准库 logging 统一到同一渲染器"""
    log_format = os.environ.get("ONESHOT_LOG_FORMAT", "dev").lower()
    level = getattr(logging, os.environ.get("ONESHOT_LOG_LEVEL", "INFO").upper(), logging.INFO)
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(log_format),
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def setup_logfire(app=None) -> None:
    """可选接入 Logfire（需要 LOGFIRE_TOKEN），失败时只记录告警"""
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return
    try:
        import logfire

        logfire.configure(service_name="oneshot-journey")
        if app is not None:
            logfire.instrument_fastapi(app)
    except Exception as e:
        structlog.get_logger().warning("logfire_init_failed", error=str(e))
