# rwms/services/unit_move_service.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.cell import Cell
from rwms.models.unit import Unit
from rwms.models.unit_move import UnitMove
from rwms.obs.metrics import move_denied_total
from rwms.services.errors import StateConflictError
from rwms.services.inventory_lock import assert_unlocked
from rwms.services.move_validator import validate_move
from rwms.services.movement_log import history_for_unit
from rwms.services.scan_tokens import UnitRef
from rwms.services.unit_intake import receive_surplus as _receive_surplus
from rwms.services.unit_intake import receive_unit as _receive_unit
from rwms.services.unit_loaders import load_cell, load_cell_by_code, load_unit
from rwms.services.unit_move_apply import apply_unit_move, ensure_cell_available
from rwms.services.unit_move_types import MoveResult, ShipmentResult
from rwms.services.unit_shipment import return_from_out as _return_from_out
from rwms.services.unit_shipment import ship_out as _ship_out

log = logging.getLogger("rwms.moves")


async def move_unit(
    session: AsyncSession,
    *,
    unit_ref: UnitRef,
    to_cell_code: str,
    moved_by: str,
    expected_from_cell_code: Optional[str] = None,
    note: Optional[str] = None,
) -> MoveResult:
    """
    通用扫码移动（单个 unit）：

    - 盘点进行中 → LockedError
    - 来源格缺省取 unit 当前格；显式给出时必须与 unit 实际所在格一致
    - 合法性交给 validate_move（bin 来源的实例校验 + 类型矩阵）
    - 通过后 compare-and-set 改 cell/status 并写一条台账
    """
    await assert_unlocked(session, op="move_unit")

    unit = await load_unit(session, unit_ref, for_update=True)
    to_cell = await load_cell_by_code(session, to_cell_code)

    current_cell: Optional[Cell] = None
    if unit.cell_id is not None:
        current_cell = await load_cell(session, unit.cell_id)

    if expected_from_cell_code:
        from_cell = await load_cell_by_code(session, expected_from_cell_code)
    elif current_cell is not None:
        from_cell = current_cell
    else:
        move_denied_total.labels("UNIT_ELSEWHERE").inc()
        raise StateConflictError(
            f"Unit {unit.barcode} is not placed in any cell (status={unit.status})",
            code="UNIT_ELSEWHERE",
            context={"unit_id": unit.id, "status": str(unit.status)},
        )

    ensure_cell_available(from_cell, role="FROM")
    ensure_cell_available(to_cell, role="TO")

    decision = validate_move(
        from_cell.cell_type,
        to_cell.cell_type,
        unit_cell_id=unit.cell_id,
        unit_cell_type=current_cell.cell_type if current_cell is not None else None,
        from_cell_id=from_cell.id,
    )
    if not decision.allowed:
        move_denied_total.labels(decision.code).inc()
        raise StateConflictError(
            decision.reason or "Move denied",
            code=decision.code,
            context={
                "unit_id": unit.id,
                "from_cell": from_cell.code,
                "to_cell": to_cell.code,
            },
        )

    if unit.cell_id != from_cell.id:
        move_denied_total.labels("UNIT_ELSEWHERE").inc()
        raise StateConflictError(
            f"Unit {unit.barcode} is not in cell {from_cell.code}",
            code="UNIT_ELSEWHERE",
            context={"unit_id": unit.id, "from_cell": from_cell.code, "actual_cell_id": unit.cell_id},
        )

    if from_cell.id == to_cell.id:
        raise StateConflictError(
            f"Unit {unit.barcode} is already in cell {to_cell.code}",
            code="SAME_CELL",
            context={"unit_id": unit.id, "cell": to_cell.code},
        )

    move = await apply_unit_move(
        session,
        unit=unit,
        expected_from_cell_id=from_cell.id,
        to_cell=to_cell,
        moved_by=moved_by,
        source="move",
        note=note,
    )
    log.info("unit moved: %s %s -> %s by %s", unit.barcode, from_cell.code, to_cell.code, moved_by)
    return MoveResult(
        unit_id=unit.id,
        barcode=unit.barcode,
        from_cell_id=from_cell.id,
        to_cell_id=to_cell.id,
        status=str(unit.status),
        move_id=move.id,
    )


class UnitMoveService:
    """unit 移动类操作的门面；不控事务，由调用方 commit / rollback。"""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def move_unit(
        self,
        *,
        unit_ref: UnitRef,
        to_cell_code: str,
        moved_by: str,
        expected_from_cell_code: Optional[str] = None,
        note: Optional[str] = None,
    ) -> MoveResult:
        return await move_unit(
            self.session,
            unit_ref=unit_ref,
            to_cell_code=to_cell_code,
            moved_by=moved_by,
            expected_from_cell_code=expected_from_cell_code,
            note=note,
        )

    async def receive_unit(self, *, barcode: str, cell_code: str, actor: str) -> MoveResult:
        return await _receive_unit(self.session, barcode=barcode, cell_code=cell_code, actor=actor)

    async def receive_surplus(self, *, barcode: str, cell_code: str, actor: str) -> MoveResult:
        return await _receive_surplus(self.session, barcode=barcode, cell_code=cell_code, actor=actor)

    async def ship_out(self, *, unit_ref: UnitRef, courier_name: str, actor: str) -> ShipmentResult:
        return await _ship_out(self.session, unit_ref=unit_ref, courier_name=courier_name, actor=actor)

    async def return_from_out(
        self,
        *,
        shipment_id: int,
        target_cell_code: str,
        actor: str,
        reason: Optional[str] = None,
    ) -> ShipmentResult:
        return await _return_from_out(
            self.session,
            shipment_id=shipment_id,
            target_cell_code=target_cell_code,
            actor=actor,
            reason=reason,
        )

    async def get_unit(self, unit_ref: UnitRef) -> Unit:
        return await load_unit(self.session, unit_ref)

    async def history(self, unit_ref: UnitRef) -> List[UnitMove]:
        unit = await load_unit(self.session, unit_ref)
        return await history_for_unit(self.session, unit.id)


__all__ = ["MoveResult", "ShipmentResult", "UnitMoveService", "move_unit"]
