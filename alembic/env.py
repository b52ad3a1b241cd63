# alembic/env.py
# rwms 迁移入口（同步引擎 + NullPool）

from __future__ import annotations

import os
import re
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

# Alembic 基本配置
config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# 延迟加载模型（避免导入时机引发的问题）
from rwms.core.config import get_settings  # noqa: E402
from rwms.db.base import Base, init_models  # noqa: E402

_ASYNC_DRV_RE = re.compile(r"\+asyncpg\b|\+psycopg2\b|\+pg8000\b", re.I)


def normalize_sync_url(url: str) -> str:
    """迁移走同步驱动：PG 统一 +psycopg（psycopg3 同步模式），sqlite 去掉 +aiosqlite。"""
    url = (url or "").strip()
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()

    url = url.replace("sqlite+aiosqlite://", "sqlite://", 1)
    url = _ASYNC_DRV_RE.sub("+psycopg", url)
    url = re.sub(r"^postgres://", "postgresql+psycopg://", url, flags=re.I)
    if url.lower().startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def get_url() -> str:
    """
    优先级：
      1. RWMS_DATABASE_URL
      2. alembic.ini 里的 sqlalchemy.url
      3. AppSettings 默认值（含 .env）
    """
    url = (
        os.getenv("RWMS_DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
        or get_settings().DATABASE_URL
    )
    if not url:
        raise RuntimeError("Alembic cannot determine database URL: set RWMS_DATABASE_URL or sqlalchemy.url")
    return normalize_sync_url(url)


def include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    # DB 里多出来的对象不参与 diff，避免自动生成 drop
    if reflected and compare_to is None:
        return False
    return True


def run_migrations_offline() -> None:
    init_models()
    context.configure(
        url=get_url(),
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=False,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    init_models()
    url = get_url()
    engine = create_engine(url, poolclass=NullPool, future=True)

    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=Base.metadata,
            compare_type=True,
            compare_server_default=False,
            include_object=include_object,
            # sqlite 的 ALTER 走 batch 模式
            render_as_batch=url.startswith("sqlite"),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
