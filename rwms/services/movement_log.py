# rwms/services/movement_log.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.unit_move import UnitMove
from rwms.obs.metrics import unit_moves_total

UTC = timezone.utc


async def record_move(
    session: AsyncSession,
    *,
    unit_id: int,
    from_cell_id: Optional[int],
    to_cell_id: Optional[int],
    moved_by: str,
    source: str,
    note: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None,
    occurred_at: Optional[datetime] = None,
) -> UnitMove:
    """
    移动台账唯一写入口（只插入，不更新 / 删除）。

    调用方负责与 unit.cell_id / status 的变更放在同一事务里。
    """
    row = UnitMove(
        unit_id=unit_id,
        from_cell_id=from_cell_id,
        to_cell_id=to_cell_id,
        moved_by=moved_by,
        source=str(source),
        note=note,
        attributes=dict(attributes or {}),
        created_at=occurred_at or datetime.now(UTC),
    )
    session.add(row)
    await session.flush()
    unit_moves_total.labels(str(source)).inc()
    return row


async def history_for_unit(session: AsyncSession, unit_id: int) -> List[UnitMove]:
    stmt = (
        select(UnitMove)
        .where(UnitMove.unit_id == unit_id)
        .order_by(UnitMove.created_at.asc(), UnitMove.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def history_for_cell(
    session: AsyncSession,
    cell_id: int,
    *,
    limit: int = 200,
) -> List[UnitMove]:
    stmt = (
        select(UnitMove)
        .where(or_(UnitMove.from_cell_id == cell_id, UnitMove.to_cell_id == cell_id))
        .order_by(UnitMove.created_at.asc(), UnitMove.id.asc())
        .limit(limit)
    )
    return list((await session.execute(stmt)).scalars().all())
