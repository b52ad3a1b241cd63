# tests/services/test_unit_intake.py
from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.enums import UnitStatus
from rwms.services.cell_service import CellService
from rwms.services.errors import LockedError, StateConflictError, ValidationError
from rwms.services.inventory_service import InventoryService
from rwms.services.unit_move_service import UnitMoveService

pytestmark = pytest.mark.asyncio


async def test_receive_creates_unit_in_bin(session: AsyncSession, cells):
    svc = UnitMoveService(session)
    res = await svc.receive_unit(barcode=" 55-01 ", cell_code="cell:b1", actor="courier-desk")
    await session.commit()

    assert res.created is True
    assert res.barcode == "5501"
    assert res.from_cell_id is None
    assert res.to_cell_id == cells["B1"].id
    assert res.status == UnitStatus.BIN.value

    history = await svc.history("5501")
    assert len(history) == 1
    assert history[0].source == "receiving"
    assert history[0].attributes == {"created": True}


async def test_receive_same_bin_is_idempotent(session: AsyncSession, cells):
    svc = UnitMoveService(session)
    await svc.receive_unit(barcode="5502", cell_code="B1", actor="desk")
    again = await svc.receive_unit(barcode="5502", cell_code="B1", actor="desk")

    assert again.move_id is None
    assert again.created is False
    assert len(await svc.history("5502")) == 1


async def test_receive_when_placed_elsewhere(session: AsyncSession, cells):
    svc = UnitMoveService(session)
    await svc.receive_unit(barcode="5503", cell_code="B1", actor="desk")

    with pytest.raises(StateConflictError) as ei:
        await svc.receive_unit(barcode="5503", cell_code="B2", actor="desk")
    assert ei.value.code == "UNIT_ELSEWHERE"


async def test_receive_requires_bin(session: AsyncSession, cells):
    with pytest.raises(ValidationError) as ei:
        await UnitMoveService(session).receive_unit(barcode="5504", cell_code="S1", actor="desk")
    assert ei.value.code == "INVALID_CELL_TYPE"


async def test_receive_into_blocked_bin(session: AsyncSession, cells):
    await CellService(session).set_blocked(cells["B2"].id, True)
    with pytest.raises(StateConflictError) as ei:
        await UnitMoveService(session).receive_unit(barcode="5505", cell_code="B2", actor="desk")
    assert ei.value.code == "CELL_UNAVAILABLE"


async def test_surplus_intake(session: AsyncSession, cells):
    svc = UnitMoveService(session)
    res = await svc.receive_surplus(barcode="5506", cell_code="X1", actor="desk")
    assert res.status == UnitStatus.SURPLUS.value
    assert res.to_cell_id == cells["X1"].id

    history = await svc.history("5506")
    assert [h.source for h in history] == ["surplus"]

    with pytest.raises(ValidationError):
        await svc.receive_surplus(barcode="5507", cell_code="B1", actor="desk")


async def test_not_located_unit_can_be_received_again(session: AsyncSession, cells, place_unit):
    # 盘点清空后的 unit（not_located）重新收货入格
    await place_unit("5508", "S1")

    inv = InventoryService(session)
    await inv.start_session(actor="lead")
    for t in await inv.list_cell_tasks():
        await inv.save_cell_scan(cell_id=t.cell_id, worker_id="w1", scanned_barcodes=[])
    await session.commit()

    svc = UnitMoveService(session)
    unit = await svc.get_unit("5508")
    assert unit.cell_id is None
    assert unit.status == UnitStatus.NOT_LOCATED

    res = await svc.receive_unit(barcode="5508", cell_code="B2", actor="desk")
    assert res.created is False
    assert res.to_cell_id == cells["B2"].id


async def test_intake_is_lock_gated(session: AsyncSession, cells):
    await InventoryService(session).start_session(actor="lead")
    with pytest.raises(LockedError):
        await UnitMoveService(session).receive_unit(barcode="5509", cell_code="B1", actor="desk")
    with pytest.raises(LockedError):
        await UnitMoveService(session).receive_surplus(barcode="5509", cell_code="X1", actor="desk")
