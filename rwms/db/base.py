# rwms/db/base.py
from __future__ import annotations

import importlib
import logging
import pkgutil
from typing import Iterable, Iterator, List, Set

from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("rwms.models")


class Base(DeclarativeBase):
    """全局唯一 ORM Base"""

    pass


_INITIALIZED: bool = False  # 防重复初始化


def _iter_model_modules_recursive(pkg_name: str = "rwms.models") -> Iterator[str]:
    """递归发现 rwms.models.* 下的所有模块（排除以下划线开头的内部模块）"""
    try:
        pkg = importlib.import_module(pkg_name)
    except ModuleNotFoundError:
        return iter([])

    paths = list(getattr(pkg, "__path__", []))
    if not paths:
        return iter([])

    for _, name, _ in pkgutil.walk_packages(paths, prefix=pkg_name + "."):
        short = name.rsplit(".", 1)[-1]
        if short.startswith("_"):
            continue
        yield name


def init_models(
    *,
    extra_modules: Iterable[str] | None = None,
    force: bool = False,
) -> None:
    """
    集中导入模型 + 固化关系映射：
      1) 先显式导入被外键引用的模型（cells / units）
      2) 再递归导入 rwms.models.* 补齐遗漏
      3) 最后统一 configure_mappers()

    模型导入失败直接抛出，不做静默跳过。
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        log.debug("init_models() called again; already initialized, skipping.")
        return

    loaded: List[str] = []
    seen: Set[str] = set()

    explicit_chain = [
        "rwms.models.cell",
        "rwms.models.unit",
    ]
    modules = list(explicit_chain) + list(_iter_model_modules_recursive("rwms.models"))
    if extra_modules:
        modules.extend(extra_modules)

    for mod in modules:
        if mod in seen:
            continue
        seen.add(mod)
        importlib.import_module(mod)
        loaded.append(mod)

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized & mappers configured (loaded %d modules)", len(loaded))


# ---- 跨后端列类型：PG 用 BIGINT / JSONB，sqlite 用 INTEGER（rowid 自增）/ JSON ----
from sqlalchemy import JSON, BigInteger, Integer  # noqa: E402
from sqlalchemy.dialects.postgresql import JSONB  # noqa: E402

BigIntId = BigInteger().with_variant(Integer(), "sqlite")
JsonCol = JSON().with_variant(JSONB(), "postgresql")
