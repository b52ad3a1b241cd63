# tests/services/test_cell_service.py
from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.audit_event import AuditEvent
from rwms.models.enums import CellType
from rwms.services.cell_service import CellService
from rwms.services.errors import NotFoundError, StateConflictError, ValidationError

pytestmark = pytest.mark.asyncio


async def test_create_normalizes_code(session: AsyncSession):
    svc = CellService(session)
    cell = await svc.create_cell(code=" cell:b-07 ", cell_type="BIN", attributes={"zone": "A"}, actor="admin")
    await session.commit()

    assert cell.code == "B-07"
    assert cell.cell_type == CellType.BIN
    assert cell.is_available
    assert cell.attributes == {"zone": "A"}

    found = await svc.get_cell_by_code("b-07")
    assert found.id == cell.id


async def test_duplicate_and_bad_type(session: AsyncSession):
    svc = CellService(session)
    await svc.create_cell(code="S9", cell_type="storage")

    with pytest.raises(StateConflictError) as ei:
        await svc.create_cell(code="s9", cell_type="shipping")
    assert ei.value.code == "CELL_EXISTS"

    with pytest.raises(ValidationError) as ei:
        await svc.create_cell(code="Q1", cell_type="quarantine")
    assert ei.value.code == "INVALID_CELL_TYPE"
    assert "storage" in ei.value.context["allowed"]


async def test_list_filters(session: AsyncSession, cells):
    svc = CellService(session)
    bins = await svc.list_cells(cell_type="bin")
    assert [c.code for c in bins] == ["B1", "B2"]

    await svc.set_active(cells["B2"].id, False)
    active_bins = await svc.list_cells(cell_type=CellType.BIN, active=True)
    assert [c.code for c in active_bins] == ["B1"]


async def test_block_and_activate_are_audited_on_change(session: AsyncSession, cells):
    svc = CellService(session)
    cell = await svc.set_blocked(cells["S1"].id, True, actor="lead")
    assert cell.is_blocked and not cell.is_available
    # 重复设置同一状态不再写审计
    await svc.set_blocked(cells["S1"].id, True, actor="lead")
    await svc.set_blocked(cells["S1"].id, False, actor="lead")

    events = (
        await session.execute(
            select(AuditEvent).where(AuditEvent.category == "CELL", AuditEvent.ref == "S1").order_by(AuditEvent.id)
        )
    ).scalars().all()
    assert [e.meta["event"] for e in events] == ["CREATED", "BLOCKED", "UNBLOCKED"]


async def test_units_and_history(session: AsyncSession, cells, place_unit):
    u1 = await place_unit("6001", "S1")
    await place_unit("6002", "S2")

    svc = CellService(session)
    assert [u.id for u in await svc.units_in_cell(cells["S1"].id)] == [u1]

    history = await svc.history(cells["B1"].id)
    # 两件都经 B1 收货再移出：2 进 + 2 出
    assert len(history) == 4

    with pytest.raises(NotFoundError):
        await svc.units_in_cell(424242)
