# tests/services/test_unit_move_service.py
from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.enums import UnitStatus
from rwms.models.unit_move import UnitMove
from rwms.services.cell_service import CellService
from rwms.services.errors import LockedError, NotFoundError, StateConflictError
from rwms.services.inventory_service import InventoryService
from rwms.services.unit_move_service import UnitMoveService

pytestmark = pytest.mark.asyncio


async def _move_count(session: AsyncSession) -> int:
    return int((await session.execute(select(func.count()).select_from(UnitMove))).scalar_one())


async def test_bin_to_storage_moves_and_logs(session: AsyncSession, cells, place_unit):
    unit_id = await place_unit("1001", "B1")

    svc = UnitMoveService(session)
    res = await svc.move_unit(unit_ref="1001", to_cell_code="s1", moved_by="alice")
    await session.commit()

    assert res.unit_id == unit_id
    assert res.from_cell_id == cells["B1"].id
    assert res.to_cell_id == cells["S1"].id
    assert res.status == UnitStatus.STORED.value
    assert res.move_id is not None

    unit = await svc.get_unit(unit_id)
    assert unit.cell_id == cells["S1"].id
    assert unit.status == UnitStatus.STORED

    history = await svc.history("1001")
    assert [h.source for h in history] == ["receiving", "move"]
    last = history[-1]
    assert (last.from_cell_id, last.to_cell_id, last.moved_by) == (cells["B1"].id, cells["S1"].id, "alice")


async def test_explicit_source_must_match(session: AsyncSession, cells, place_unit):
    await place_unit("1002", "S1")

    svc = UnitMoveService(session)
    res = await svc.move_unit(
        unit_ref="1002",
        to_cell_code="SH1",
        expected_from_cell_code="S1",
        moved_by="bob",
    )
    assert res.status == UnitStatus.SHIPPING.value

    with pytest.raises(StateConflictError) as ei:
        await svc.move_unit(
            unit_ref="1002",
            to_cell_code="S2",
            expected_from_cell_code="S1",
            moved_by="bob",
        )
    assert ei.value.code == "UNIT_ELSEWHERE"


async def test_illegal_transition_writes_nothing(session: AsyncSession, cells, place_unit):
    await place_unit("1003", "S1")
    before = await _move_count(session)

    svc = UnitMoveService(session)
    with pytest.raises(StateConflictError) as ei:
        await svc.move_unit(unit_ref="1003", to_cell_code="B2", moved_by="alice")
    assert ei.value.code == "ILLEGAL_TRANSITION"

    with pytest.raises(StateConflictError) as ei:
        await svc.move_unit(unit_ref="1003", to_cell_code="P1", moved_by="alice")
    assert ei.value.code == "ILLEGAL_TRANSITION"

    assert await _move_count(session) == before
    unit = await svc.get_unit("1003")
    assert unit.cell_id == cells["S1"].id


async def test_wrong_bin_instance(session: AsyncSession, cells, place_unit):
    await place_unit("1004", "B1")
    before = await _move_count(session)

    svc = UnitMoveService(session)
    with pytest.raises(StateConflictError) as ei:
        await svc.move_unit(
            unit_ref="1004",
            to_cell_code="S1",
            expected_from_cell_code="B2",
            moved_by="alice",
        )
    assert ei.value.code == "WRONG_SOURCE_INSTANCE"
    assert await _move_count(session) == before

    unit = await svc.get_unit("1004")
    assert unit.cell_id == cells["B1"].id
    assert unit.status == UnitStatus.BIN


async def test_bin_source_but_unit_in_storage(session: AsyncSession, cells, place_unit):
    await place_unit("1005", "S1")

    with pytest.raises(StateConflictError) as ei:
        await UnitMoveService(session).move_unit(
            unit_ref="1005",
            to_cell_code="SH1",
            expected_from_cell_code="B1",
            moved_by="alice",
        )
    assert ei.value.code == "UNIT_ELSEWHERE"


async def test_same_cell_is_rejected(session: AsyncSession, cells, place_unit):
    await place_unit("1006", "S1")
    with pytest.raises(StateConflictError) as ei:
        await UnitMoveService(session).move_unit(unit_ref="1006", to_cell_code="S1", moved_by="alice")
    assert ei.value.code == "SAME_CELL"


async def test_blocked_or_inactive_cells_reject_moves(session: AsyncSession, cells, place_unit):
    await place_unit("1007", "S1")

    cell_svc = CellService(session)
    await cell_svc.set_blocked(cells["S2"].id, True, actor="lead")
    await cell_svc.set_active(cells["SH1"].id, False, actor="lead")

    svc = UnitMoveService(session)
    with pytest.raises(StateConflictError) as ei:
        await svc.move_unit(unit_ref="1007", to_cell_code="S2", moved_by="alice")
    assert ei.value.code == "CELL_UNAVAILABLE"
    assert ei.value.context["role"] == "TO"

    with pytest.raises(StateConflictError) as ei:
        await svc.move_unit(unit_ref="1007", to_cell_code="SH1", moved_by="alice")
    assert ei.value.code == "CELL_UNAVAILABLE"

    # 来源格被封锁同样不能移出
    await cell_svc.set_blocked(cells["S2"].id, False, actor="lead")
    await cell_svc.set_blocked(cells["S1"].id, True, actor="lead")
    with pytest.raises(StateConflictError) as ei:
        await svc.move_unit(unit_ref="1007", to_cell_code="S2", moved_by="alice")
    assert ei.value.context["role"] == "FROM"


async def test_rejected_bumps_rejection_count(session: AsyncSession, cells, place_unit):
    await place_unit("1008", "S1")

    svc = UnitMoveService(session)
    await svc.move_unit(unit_ref="1008", to_cell_code="R1", moved_by="qa")
    unit = await svc.get_unit("1008")
    assert unit.status == UnitStatus.REJECTED
    assert unit.rejection_count == 1

    await svc.move_unit(unit_ref="1008", to_cell_code="S2", moved_by="qa")
    await svc.move_unit(unit_ref="1008", to_cell_code="R1", moved_by="qa")
    unit = await svc.get_unit("1008")
    assert unit.rejection_count == 2


async def test_locked_while_inventory_active(session: AsyncSession, cells, place_unit):
    await place_unit("1009", "S1")

    await InventoryService(session).start_session(actor="lead")
    await session.commit()
    before = await _move_count(session)

    with pytest.raises(LockedError) as ei:
        await UnitMoveService(session).move_unit(unit_ref="1009", to_cell_code="S2", moved_by="alice")
    assert ei.value.code == "LOCKED"
    assert ei.value.http_status == 423
    assert await _move_count(session) == before


async def test_unknown_unit_and_cell(session: AsyncSession, cells, place_unit):
    await place_unit("1010", "S1")
    svc = UnitMoveService(session)

    with pytest.raises(NotFoundError):
        await svc.move_unit(unit_ref="777777", to_cell_code="S2", moved_by="alice")
    with pytest.raises(NotFoundError):
        await svc.move_unit(unit_ref="1010", to_cell_code="NOPE", moved_by="alice")
