# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from typing import AsyncGenerator, Awaitable, Callable, Dict

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

# ============================================================
# ★★ 关键：在 import rwms.* 之前设置 DSN ★★
#   模块级 engine 只在 import 时建对象、不连库；
#   每个用例真正用的是下面 tmp_path 上的独立 sqlite 文件。
# ============================================================
os.environ.setdefault(
    "RWMS_DATABASE_URL",
    "sqlite:///" + os.path.join(tempfile.gettempdir(), "rwms-test-default.db"),
)
os.environ.setdefault("RWMS_ENV", "test")

from rwms.db.session import build_engine, build_session_maker, get_session, init_schema  # noqa: E402
from rwms.main import app  # noqa: E402
from rwms.models.cell import Cell  # noqa: E402
from rwms.services.cell_service import CellService  # noqa: E402
from rwms.services.unit_move_service import UnitMoveService  # noqa: E402

# 每个用例都有这一套格
SEED_CELLS = {
    "B1": "bin",
    "B2": "bin",
    "S1": "storage",
    "S2": "storage",
    "SH1": "shipping",
    "P1": "picking",
    "P2": "picking",
    "R1": "rejected",
    "X1": "surplus",
    "RC1": "receiving",
}


# =========================================
# 每用例独立 Engine（独立 sqlite 文件 + NullPool，避免跨 loop）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(f"sqlite:///{tmp_path / 'rwms.db'}", poolclass=NullPool)
    await init_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(async_engine)


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    标准 Session：用例结束时回滚未提交的部分。
    与 client 混用时，先 commit 再发请求（sqlite 写事务整体串行）。
    """
    async with async_session_maker() as sess:
        try:
            yield sess
        finally:
            if sess.in_transaction():
                await sess.rollback()


# =========================================
# 最小种子：一套各类型的格
# =========================================
@pytest_asyncio.fixture(scope="function")
async def cells(async_session_maker) -> Dict[str, Cell]:
    async with async_session_maker() as sess:
        svc = CellService(sess)
        out: Dict[str, Cell] = {}
        for code, cell_type in SEED_CELLS.items():
            out[code] = await svc.create_cell(code=code, cell_type=cell_type, actor="seed")
        await sess.commit()
    return out


PlaceUnit = Callable[[str, str], Awaitable[int]]


@pytest_asyncio.fixture(scope="function")
async def place_unit(async_session_maker, cells) -> PlaceUnit:
    """
    把一个条码落到指定格（收货进 B1，再按需移动），返回 unit id。
    走的是正式的收货 / 移动路径，台账完整。
    """

    async def _place(barcode: str, cell_code: str) -> int:
        async with async_session_maker() as sess:
            svc = UnitMoveService(sess)
            kind = cells[cell_code].cell_type
            if kind == "surplus":
                res = await svc.receive_surplus(barcode=barcode, cell_code=cell_code, actor="seed")
            elif kind == "bin":
                res = await svc.receive_unit(barcode=barcode, cell_code=cell_code, actor="seed")
            else:
                await svc.receive_unit(barcode=barcode, cell_code="B1", actor="seed")
                res = await svc.move_unit(unit_ref=barcode, to_cell_code=cell_code, moved_by="seed")
            await sess.commit()
            return res.unit_id

    return _place


# =========================================
# FastAPI / httpx AsyncClient（get_session 指向本用例的库）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client(async_session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def _override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as sess:
            yield sess

    app.dependency_overrides[get_session] = _override_get_session
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(
            transport=transport,
            base_url="http://testserver",
            timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=5.0, pool=5.0),
        ) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_session, None)
