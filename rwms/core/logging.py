# rwms/core/logging.py
from __future__ import annotations

import logging
import sys
from typing import Dict

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# 第三方 logger 的固定级别；sqlalchemy.engine 另由 sql_echo 决定
_THIRD_PARTY: Dict[str, int] = {
    "uvicorn.access": logging.INFO,
    "aiosqlite": logging.WARNING,
    "alembic": logging.INFO,
}


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def setup_logging(level: str = "INFO", *, sql_echo: bool = False) -> logging.Logger:
    """
    进程级日志初始化，可重复调用：

    - 根 logger 只保留一个 stdout handler
    - 业务日志都挂在 "rwms.<area>" 下（rwms.moves / rwms.inventory / rwms.api ...）
    - SQL 语句日志只在 sql_echo 打开时输出

    返回 "rwms" 根 logger。
    """
    lvl = _resolve_level(level)

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(lvl)

    for name, third_lvl in _THIRD_PARTY.items():
        logging.getLogger(name).setLevel(third_lvl)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if sql_echo else logging.WARNING)

    app_logger = logging.getLogger("rwms")
    app_logger.setLevel(lvl)
    return app_logger
