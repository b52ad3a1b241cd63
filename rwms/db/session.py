# rwms/db/session.py
# 统一的异步会话工厂 + FastAPI 依赖（get_session）
from __future__ import annotations

import logging
import re
from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rwms.core.config import get_settings

log = logging.getLogger("rwms.db")


# ---- DSN 归一：PG 统一到 psycopg3，sqlite 统一到 aiosqlite ----
def normalize_async_dsn(url: str) -> str:
    url = (url or "").strip()
    # 有些环境会把值写成 '"postgresql+psycopg://.../rwms"'，这里统一剥掉两侧引号
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()
    if not url:
        raise RuntimeError("RWMS_DATABASE_URL is empty")
    # sqlite:/// → sqlite+aiosqlite:///
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite://" + url[len("sqlite:///") - 1 :]
    # postgres/postgresql(+*) → postgresql+psycopg
    if url.startswith("postgresql+asyncpg://") or url.startswith("postgres+asyncpg://"):
        return re.sub(r"^postgres(?:ql)?\+asyncpg://", "postgresql+psycopg://", url)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    # pysqlite / aiosqlite 自带的隐式事务会让 SAVEPOINT 失效：
    # 关掉驱动层事务管理，由 SQLAlchemy 显式开事务。
    # sqlite 没有行锁（FOR UPDATE 被忽略），用 IMMEDIATE 让写事务整体串行。
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, *, echo: bool = False, **kwargs) -> AsyncEngine:
    dsn = normalize_async_dsn(url)
    if dsn.startswith("sqlite"):
        # sqlite：写锁等待交给 busy timeout，不用连接池探活
        kwargs.setdefault("connect_args", {"timeout": 15})
        engine = create_async_engine(dsn, echo=echo, **kwargs)
        _enable_sqlite_savepoints(engine)
        return engine

    kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(dsn, echo=echo, **kwargs)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


_settings = get_settings()
ASYNC_URL = normalize_async_dsn(_settings.DATABASE_URL)

async_engine: AsyncEngine = build_engine(ASYNC_URL, echo=_settings.SQL_ECHO)
AsyncSessionLocal: async_sessionmaker[AsyncSession] = build_session_maker(async_engine)

log.info("[DB] Using DSN (async): %s", async_engine.url.render_as_string(hide_password=True))


# ---- FastAPI 依赖 ----
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# ---- 建表（dev / 测试用；生产走 alembic）----
async def init_schema(engine: AsyncEngine | None = None) -> None:
    from rwms.db.base import Base, init_models

    init_models()
    eng = engine or async_engine
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ---- 关闭引擎（测试/生命周期） ----
async def close_engines() -> None:
    await async_engine.dispose()
