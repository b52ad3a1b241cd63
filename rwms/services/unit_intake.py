# rwms/services/unit_intake.py
"""
收货入格：快递员交回的退货进 bin，来源不明的件进 surplus。

两条路径共用同一套规则（只有目标格类型和台账 source 不同）：
- 未登记的条码 → 新建 unit 并入格
- 已登记但未上架（not_located）→ 入格
- 已在该格 → 幂等，不写台账
- 已在别处 / 已出库 → UNIT_ELSEWHERE
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.cell import Cell
from rwms.models.enums import CellType, MoveSource, UnitStatus
from rwms.models.unit import Unit
from rwms.services.errors import StateConflictError, ValidationError
from rwms.services.inventory_lock import assert_unlocked
from rwms.services.scan_tokens import normalize_barcode
from rwms.services.unit_loaders import load_cell_by_code
from rwms.services.unit_move_apply import apply_unit_move, ensure_cell_available
from rwms.services.unit_move_types import MoveResult

log = logging.getLogger("rwms.intake")

UTC = timezone.utc


async def _get_or_create_unit(session: AsyncSession, barcode: str) -> tuple[Unit, bool]:
    stmt = select(Unit).where(Unit.barcode == barcode).with_for_update()
    unit = (await session.execute(stmt)).scalars().first()
    if unit is not None:
        return unit, False

    now = datetime.now(UTC)
    try:
        async with session.begin_nested():
            unit = Unit(
                barcode=barcode,
                status=UnitStatus.NOT_LOCATED,
                cell_id=None,
                rejection_count=0,
                meta={},
                created_at=now,
                updated_at=now,
            )
            session.add(unit)
        return unit, True
    except IntegrityError:
        # 并发收货同一条码：对方已建档
        log.info("unit %s registered concurrently", barcode)
        unit = (await session.execute(stmt)).scalars().one()
        return unit, False


async def _receive_into(
    session: AsyncSession,
    *,
    barcode: str,
    cell_code: str,
    actor: str,
    cell_type: CellType,
    source: MoveSource,
) -> MoveResult:
    await assert_unlocked(session, op=str(source))

    code = normalize_barcode(barcode)
    cell: Cell = await load_cell_by_code(session, cell_code)
    if CellType(cell.cell_type) is not cell_type:
        raise ValidationError(
            f"Cell {cell.code} is {cell.cell_type}, expected {cell_type.value}",
            code="INVALID_CELL_TYPE",
            context={"cell_code": cell.code, "cell_type": str(cell.cell_type)},
        )

    ensure_cell_available(cell, role="TO")

    unit, created = await _get_or_create_unit(session, code)

    if unit.cell_id == cell.id:
        return MoveResult(
            unit_id=unit.id,
            barcode=unit.barcode,
            from_cell_id=cell.id,
            to_cell_id=cell.id,
            status=str(unit.status),
            move_id=None,
        )

    if unit.cell_id is not None or UnitStatus(unit.status) is UnitStatus.OUT:
        raise StateConflictError(
            f"Unit {unit.barcode} is already recorded elsewhere (cell_id={unit.cell_id}, status={unit.status})",
            code="UNIT_ELSEWHERE",
            context={"unit_id": unit.id, "cell_id": unit.cell_id, "status": str(unit.status)},
        )

    move = await apply_unit_move(
        session,
        unit=unit,
        expected_from_cell_id=None,
        to_cell=cell,
        moved_by=actor,
        source=source,
        attributes={"created": created},
    )
    log.info("unit %s received into %s (%s) by %s", unit.barcode, cell.code, source, actor)
    return MoveResult(
        unit_id=unit.id,
        barcode=unit.barcode,
        from_cell_id=None,
        to_cell_id=cell.id,
        status=str(unit.status),
        move_id=move.id,
        created=created,
    )


async def receive_unit(session: AsyncSession, *, barcode: str, cell_code: str, actor: str) -> MoveResult:
    return await _receive_into(
        session,
        barcode=barcode,
        cell_code=cell_code,
        actor=actor,
        cell_type=CellType.BIN,
        source=MoveSource.RECEIVING,
    )


async def receive_surplus(session: AsyncSession, *, barcode: str, cell_code: str, actor: str) -> MoveResult:
    return await _receive_into(
        session,
        barcode=barcode,
        cell_code=cell_code,
        actor=actor,
        cell_type=CellType.SURPLUS,
        source=MoveSource.SURPLUS,
    )
