"""SQLite 数据库初始化

PRAGMA 配置 + 五张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# task_states 表 DDL：每用户每任务一行
_TASK_STATES_DDL = """
CREATE TABLE IF NOT EXISTS task_states (
    user_id        TEXT NOT NULL,
    task_key       TEXT NOT NULL,
    status         TEXT NOT NULL DEFAULT 'LOCKED',
    triggered_at   TEXT,
    last_shown_at  TEXT,
    completed_at   TEXT,
    updated_at     TEXT NOT NULL,
    version        INTEGER NOT NULL DEFAULT 1,

    PRIMARY KEY (user_id, task_key)
);
"""

_TASK_STATES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_task_states_status ON task_states(user_id, status);",
]

# journeys 表 DDL：每用户一行
_JOURNEYS_DDL = """
CREATE TABLE IF NOT EXISTS journeys (
    user_id             TEXT PRIMARY KEY,
    phase               TEXT NOT NULL DEFAULT 'onboarding',
    completion_pct      REAL NOT NULL DEFAULT 0,
    has_blocking_tasks  INTEGER NOT NULL DEFAULT 0,
    last_activity_at    TEXT,
    last_notified_at    TEXT,
    generated_at        TEXT,
    generation_version  INTEGER NOT NULL DEFAULT 0,
    sport               TEXT,
    role                TEXT
);
"""

# achievements 表 DDL：(user_id, achievement_key) 唯一，重复授予被忽略
_ACHIEVEMENTS_DDL = """
CREATE TABLE IF NOT EXISTS achievements (
    user_id           TEXT NOT NULL,
    achievement_key   TEXT NOT NULL,
    title             TEXT NOT NULL DEFAULT '',
    description       TEXT NOT NULL DEFAULT '',
    icon              TEXT NOT NULL DEFAULT '',
    trigger_task_key  TEXT,
    created_at        TEXT NOT NULL,

    UNIQUE (user_id, achievement_key)
);
"""

_ACHIEVEMENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_achievements_user_ts ON achievements(user_id, created_at DESC);",
]

# progress_events 表 DDL（append-only）
_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS progress_events (
    event_id        TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    user_seq        INTEGER NOT NULL,
    ts              TEXT NOT NULL,
    type            TEXT NOT NULL,
    schema_version  INTEGER NOT NULL DEFAULT 1,
    actor           TEXT NOT NULL,
    task_key        TEXT,
    payload         TEXT NOT NULL DEFAULT '{}',
    trace_id        TEXT NOT NULL DEFAULT '',
    parent_event_id TEXT,
    idempotency_key TEXT
);
"""

_EVENTS_INDEXES = [
    # 用户内事件序号唯一约束（确保 user_seq 严格单调递增）
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_events_user_seq ON progress_events(user_id, user_seq);",
    "CREATE INDEX IF NOT EXISTS idx_events_user_ts ON progress_events(user_id, ts);",
    # 幂等键唯一约束（仅对非 NULL 值生效）
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_events_idempotency_key "
        "ON progress_events(idempotency_key) WHERE idempotency_key IS NOT NULL;"
    ),
]

# notifications 表 DDL
_NOTIFICATIONS_DDL = """
CREATE TABLE IF NOT EXISTS notifications (
    notification_id  TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    task_key         TEXT,
    template         TEXT NOT NULL,
    title            TEXT NOT NULL DEFAULT '',
    message          TEXT NOT NULL DEFAULT '',
    cta_text         TEXT NOT NULL DEFAULT '',
    cta_url          TEXT NOT NULL DEFAULT '',
    scheduled_for    TEXT NOT NULL,
    priority         INTEGER NOT NULL DEFAULT 5,
    created_at       TEXT NOT NULL,
    delivered_at     TEXT
);
"""

_NOTIFICATIONS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_notifications_scheduled ON notifications(scheduled_for);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引"""
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_TASK_STATES_DDL)
    await conn.execute(_JOURNEYS_DDL)
    await conn.execute(_ACHIEVEMENTS_DDL)
    await conn.execute(_EVENTS_DDL)
    await conn.execute(_NOTIFICATIONS_DDL)

    for idx_sql in (
        _TASK_STATES_INDEXES
        + _ACHIEVEMENTS_INDEXES
        + _EVENTS_INDEXES
        + _NOTIFICATIONS_INDEXES
    ):
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
