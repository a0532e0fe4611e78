"""SQLite 数据库初始化 -- 产物持久化表结构

PRAGMA 配置 + presentations / slides 两张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# presentations 表 DDL
_PRESENTATIONS_DDL = """
CREATE TABLE IF NOT EXISTS presentations (
    presentation_id TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    task_id         TEXT,
    title           TEXT NOT NULL DEFAULT '',
    status          TEXT NOT NULL DEFAULT 'generating',
    slides_count    INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);
"""

_PRESENTATIONS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_presentations_user_id ON presentations(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_presentations_task_id ON presentations(task_id);",
]

# slides 表 DDL
_SLIDES_DDL = """
CREATE TABLE IF NOT EXISTS slides (
    slide_id        TEXT NOT NULL,
    presentation_id TEXT NOT NULL,
    order_index     INTEGER NOT NULL DEFAULT 0,
    title           TEXT NOT NULL DEFAULT '',
    content         TEXT NOT NULL DEFAULT '',
    layout          TEXT NOT NULL DEFAULT 'content',
    updated_at      TEXT NOT NULL,

    PRIMARY KEY (presentation_id, slide_id),
    FOREIGN KEY (presentation_id) REFERENCES presentations(presentation_id)
);
"""

_SLIDES_INDEXES = [
    (
        "CREATE INDEX IF NOT EXISTS idx_slides_presentation_order "
        "ON slides(presentation_id, order_index);"
    ),
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_PRESENTATIONS_DDL)
    await conn.execute(_SLIDES_DDL)

    for idx_sql in _PRESENTATIONS_INDEXES + _SLIDES_INDEXES:
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
