# tests/services/test_unit_shipment.py
from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.audit_event import AuditEvent
from rwms.models.enums import ShipmentStatus, UnitStatus
from rwms.models.shipment import Shipment
from rwms.services.errors import NotFoundError, StateConflictError, ValidationError
from rwms.services.picking_task_service import PickingTaskService
from rwms.services.unit_move_service import UnitMoveService

pytestmark = pytest.mark.asyncio


async def _into_picking(session: AsyncSession, cells, place_unit, barcode: str) -> int:
    """storage → 拣货任务 → P1，返回 unit id。"""
    unit_id = await place_unit(barcode, "S1")
    svc = PickingTaskService(session)
    task = await svc.create_task(target_cell_id=cells["P1"].id, created_by="planner", barcodes=[barcode])
    await svc.claim_task(task_id=task.id, worker_id="picker")
    await svc.scan_unit(task_id=task.id, barcode=barcode, worker_id="picker")
    await svc.finalize_task(task_id=task.id, destination_cell_code="P1", worker_id="picker")
    await session.commit()
    return unit_id


async def test_ship_out_from_picking(session: AsyncSession, cells, place_unit):
    unit_id = await _into_picking(session, cells, place_unit, "7001")

    svc = UnitMoveService(session)
    res = await svc.ship_out(unit_ref="7001", courier_name=" DHL ", actor="dispatch")
    await session.commit()

    assert res.unit_id == unit_id
    assert res.status == ShipmentStatus.OUT.value
    assert res.courier_name == "DHL"
    assert res.cell_id is None

    unit = await svc.get_unit(unit_id)
    assert unit.status == UnitStatus.OUT
    assert unit.cell_id is None

    last = (await svc.history(unit_id))[-1]
    assert last.source == "ship_out"
    assert last.from_cell_id == cells["P1"].id
    assert last.to_cell_id is None
    assert last.attributes["shipment_id"] == res.shipment_id

    ev = (
        await session.execute(
            select(AuditEvent).where(AuditEvent.category == "LOGISTICS", AuditEvent.ref == str(res.shipment_id))
        )
    ).scalars().one()
    assert ev.meta["event"] == "SHIP_OUT"


async def test_ship_out_requires_picking(session: AsyncSession, cells, place_unit):
    await place_unit("7002", "S1")
    with pytest.raises(StateConflictError) as ei:
        await UnitMoveService(session).ship_out(unit_ref="7002", courier_name="DHL", actor="dispatch")
    assert ei.value.code == "ILLEGAL_TRANSITION"


async def test_ship_out_requires_courier(session: AsyncSession, cells, place_unit):
    await _into_picking(session, cells, place_unit, "7003")
    with pytest.raises(ValidationError) as ei:
        await UnitMoveService(session).ship_out(unit_ref="7003", courier_name="  ", actor="dispatch")
    assert ei.value.code == "COURIER_REQUIRED"


async def test_return_from_out_back_to_bin(session: AsyncSession, cells, place_unit):
    unit_id = await _into_picking(session, cells, place_unit, "7004")
    svc = UnitMoveService(session)
    shipped = await svc.ship_out(unit_ref="7004", courier_name="UPS", actor="dispatch")

    with pytest.raises(ValidationError) as ei:
        await svc.return_from_out(shipment_id=shipped.shipment_id, target_cell_code="S1", actor="desk")
    assert ei.value.code == "INVALID_CELL_TYPE"

    res = await svc.return_from_out(
        shipment_id=shipped.shipment_id,
        target_cell_code="B2",
        actor="desk",
        reason="refused by merchant",
    )
    await session.commit()

    assert res.status == ShipmentStatus.RETURNED.value
    assert res.cell_id == cells["B2"].id

    unit = await svc.get_unit(unit_id)
    assert unit.status == UnitStatus.BIN
    assert unit.cell_id == cells["B2"].id

    shipment = await session.get(Shipment, shipped.shipment_id)
    assert shipment.return_reason == "refused by merchant"
    assert shipment.return_cell_id == cells["B2"].id

    last = (await svc.history(unit_id))[-1]
    assert (last.source, last.from_cell_id, last.to_cell_id) == ("return_from_out", None, cells["B2"].id)

    with pytest.raises(StateConflictError) as ei:
        await svc.return_from_out(shipment_id=shipped.shipment_id, target_cell_code="B1", actor="desk")
    assert ei.value.code == "SHIPMENT_NOT_OUT"


async def test_return_unknown_shipment(session: AsyncSession, cells):
    with pytest.raises(NotFoundError):
        await UnitMoveService(session).return_from_out(shipment_id=424242, target_cell_code="B1", actor="desk")
