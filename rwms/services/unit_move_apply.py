# rwms/services/unit_move_apply.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.cell import Cell
from rwms.models.enums import CellType, UnitStatus
from rwms.models.unit import Unit
from rwms.models.unit_move import UnitMove
from rwms.obs.metrics import move_denied_total
from rwms.services.errors import StateConflictError
from rwms.services.movement_log import record_move
from rwms.services.unit_status import derive_status

UTC = timezone.utc


async def apply_unit_move(
    session: AsyncSession,
    *,
    unit: Unit,
    expected_from_cell_id: Optional[int],
    to_cell: Optional[Cell],
    moved_by: str,
    source: str,
    status: Optional[UnitStatus] = None,
    note: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None,
) -> UnitMove:
    """
    原子“移动 + 记账”：

    1) UPDATE units ... WHERE id = :id AND cell_id = :expected（compare-and-set）
       0 行 → unit 已被别的路径移走 → StateConflictError(UNIT_ELSEWHERE)
    2) 写一条 unit_moves

    status 缺省按目标格类型推导；to_cell=None 表示离开登记格（出库 / 未找到）。
    不做合法性判断，调用方负责。
    """
    now = datetime.now(UTC)
    to_cell_id = to_cell.id if to_cell is not None else None
    to_type = CellType(to_cell.cell_type) if to_cell is not None else None
    new_status = status or derive_status(to_type)

    values: Dict[str, Any] = {
        "cell_id": to_cell_id,
        "status": new_status,
        "updated_at": now,
    }
    if to_type is CellType.REJECTED:
        values["rejection_count"] = Unit.rejection_count + 1

    cond = Unit.cell_id.is_(None) if expected_from_cell_id is None else Unit.cell_id == expected_from_cell_id
    stmt = (
        update(Unit)
        .where(Unit.id == unit.id, cond)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    if res.rowcount != 1:
        move_denied_total.labels("UNIT_ELSEWHERE").inc()
        raise StateConflictError(
            f"Unit {unit.barcode} is no longer in expected source cell (expected cell_id={expected_from_cell_id})",
            code="UNIT_ELSEWHERE",
            context={"unit_id": unit.id, "expected_from_cell_id": expected_from_cell_id},
        )

    move = await record_move(
        session,
        unit_id=unit.id,
        from_cell_id=expected_from_cell_id,
        to_cell_id=to_cell_id,
        moved_by=moved_by,
        source=source,
        note=note,
        attributes=attributes,
        occurred_at=now,
    )
    await session.refresh(unit)
    return move


def ensure_cell_available(cell: Cell, *, role: str) -> None:
    """停用或封锁的格不能作为任何移动的来源 / 目标。"""
    if not cell.is_available:
        move_denied_total.labels("CELL_UNAVAILABLE").inc()
        state = "inactive" if not cell.is_active else "blocked"
        raise StateConflictError(
            f"{role} cell {cell.code} is {state}",
            code="CELL_UNAVAILABLE",
            context={"cell_id": cell.id, "cell_code": cell.code, "role": role},
        )
