# rwms/services/unit_shipment.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.enums import CellType, MoveSource, ShipmentStatus, UnitStatus
from rwms.models.shipment import Shipment
from rwms.services.audit_writer import AuditEventWriter
from rwms.services.errors import NotFoundError, StateConflictError, ValidationError
from rwms.services.inventory_lock import assert_unlocked
from rwms.services.scan_tokens import UnitRef
from rwms.services.unit_loaders import load_cell, load_cell_by_code, load_unit
from rwms.services.unit_move_apply import apply_unit_move, ensure_cell_available
from rwms.services.unit_move_types import ShipmentResult

log = logging.getLogger("rwms.logistics")

UTC = timezone.utc


async def ship_out(
    session: AsyncSession,
    *,
    unit_ref: UnitRef,
    courier_name: str,
    actor: str,
) -> ShipmentResult:
    """
    出库：只接受 picking 格里的 unit。

    unit → OUT、离开登记格；生成一张 Shipment(status=out)；台账 picking → null。
    """
    await assert_unlocked(session, op="ship_out")

    courier = (courier_name or "").strip()
    if not courier:
        raise ValidationError("courier_name is required", code="COURIER_REQUIRED")

    unit = await load_unit(session, unit_ref, for_update=True)
    if UnitStatus(unit.status) is not UnitStatus.PICKING or unit.cell_id is None:
        raise StateConflictError(
            f"Unit {unit.barcode} must be in a picking cell to ship out (status={unit.status})",
            code="ILLEGAL_TRANSITION",
            context={"unit_id": unit.id, "status": str(unit.status)},
        )

    from_cell = await load_cell(session, unit.cell_id)
    ensure_cell_available(from_cell, role="FROM")

    now = datetime.now(UTC)
    shipment = Shipment(
        unit_id=unit.id,
        courier_name=courier,
        status=ShipmentStatus.OUT,
        shipped_by=actor,
        shipped_at=now,
    )
    session.add(shipment)
    await session.flush()

    await apply_unit_move(
        session,
        unit=unit,
        expected_from_cell_id=from_cell.id,
        to_cell=None,
        moved_by=actor,
        source=MoveSource.SHIP_OUT,
        status=UnitStatus.OUT,
        attributes={"shipment_id": shipment.id, "courier_name": courier},
    )

    await AuditEventWriter.write(
        session,
        flow="LOGISTICS",
        event="SHIP_OUT",
        ref=str(shipment.id),
        actor=actor,
        meta={"unit_id": unit.id, "barcode": unit.barcode, "from_cell": from_cell.code, "courier": courier},
    )
    log.info("unit %s shipped out from %s via %s (shipment=%s)", unit.barcode, from_cell.code, courier, shipment.id)

    return ShipmentResult(
        shipment_id=shipment.id,
        unit_id=unit.id,
        barcode=unit.barcode,
        status=str(shipment.status),
        courier_name=courier,
        cell_id=None,
    )


async def return_from_out(
    session: AsyncSession,
    *,
    shipment_id: int,
    target_cell_code: str,
    actor: str,
    reason: Optional[str] = None,
) -> ShipmentResult:
    """已出库的件被退回：shipment 必须仍是 out，只能回到 bin。"""
    await assert_unlocked(session, op="return_from_out")

    stmt = select(Shipment).where(Shipment.id == shipment_id).with_for_update()
    shipment = (await session.execute(stmt)).scalars().first()
    if shipment is None:
        raise NotFoundError(f"Shipment not found: id={shipment_id}", context={"shipment_id": shipment_id})
    if ShipmentStatus(shipment.status) is not ShipmentStatus.OUT:
        raise StateConflictError(
            f"Shipment {shipment_id} is {shipment.status}, expected out",
            code="SHIPMENT_NOT_OUT",
            context={"shipment_id": shipment_id, "status": str(shipment.status)},
        )

    cell = await load_cell_by_code(session, target_cell_code)
    if CellType(cell.cell_type) is not CellType.BIN:
        raise ValidationError(
            f"Returned units go back to a bin cell, got {cell.cell_type}",
            code="INVALID_CELL_TYPE",
            context={"cell_code": cell.code, "cell_type": str(cell.cell_type)},
        )
    ensure_cell_available(cell, role="TO")

    unit = await load_unit(session, shipment.unit_id, for_update=True)
    if UnitStatus(unit.status) is not UnitStatus.OUT:
        raise StateConflictError(
            f"Unit {unit.barcode} is not out (status={unit.status})",
            code="UNIT_ELSEWHERE",
            context={"unit_id": unit.id, "status": str(unit.status)},
        )

    await apply_unit_move(
        session,
        unit=unit,
        expected_from_cell_id=None,
        to_cell=cell,
        moved_by=actor,
        source=MoveSource.RETURN_FROM_OUT,
        note=reason,
        attributes={"shipment_id": shipment.id},
    )

    shipment.status = ShipmentStatus.RETURNED
    shipment.returned_by = actor
    shipment.returned_at = datetime.now(UTC)
    shipment.return_reason = reason
    shipment.return_cell_id = cell.id
    await session.flush()

    await AuditEventWriter.write(
        session,
        flow="LOGISTICS",
        event="RETURN_FROM_OUT",
        ref=str(shipment.id),
        actor=actor,
        meta={"unit_id": unit.id, "barcode": unit.barcode, "cell": cell.code, "reason": reason},
    )
    log.info("unit %s returned from out into %s (shipment=%s)", unit.barcode, cell.code, shipment.id)

    return ShipmentResult(
        shipment_id=shipment.id,
        unit_id=unit.id,
        barcode=unit.barcode,
        status=str(shipment.status),
        courier_name=shipment.courier_name,
        cell_id=cell.id,
    )
