# rwms/services/picking_task_loaders.py
from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rwms.models.enums import PickingTaskStatus
from rwms.models.picking_task import PickingTask
from rwms.services.errors import NotFoundError
from rwms.services.picking_task_types import SourceCellProgress, TaskProgress
from rwms.services.unit_loaders import load_cells_by_ids


async def load_task(
    session: AsyncSession,
    task_id: int,
    *,
    for_update: bool = False,
) -> PickingTask:
    stmt = (
        select(PickingTask)
        .options(selectinload(PickingTask.units))
        .where(PickingTask.id == task_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    task = (await session.execute(stmt)).scalars().first()
    if task is None:
        raise NotFoundError(f"PickingTask not found: id={task_id}", context={"task_id": task_id})
    if task.units:
        task.units.sort(key=lambda m: (m.id,))
    return task


async def list_tasks(
    session: AsyncSession,
    *,
    status: Optional[PickingTaskStatus | str] = None,
    target_cell_id: Optional[int] = None,
    limit: int = 100,
) -> List[PickingTask]:
    stmt = select(PickingTask).options(selectinload(PickingTask.units))
    if status is not None:
        stmt = stmt.where(PickingTask.status == PickingTaskStatus(status))
    if target_cell_id is not None:
        stmt = stmt.where(PickingTask.target_cell_id == target_cell_id)
    stmt = stmt.order_by(PickingTask.id.desc()).limit(limit)
    return list((await session.execute(stmt)).scalars().all())


async def compute_progress(session: AsyncSession, task: PickingTask) -> TaskProgress:
    """
    按来源格汇总：expected = 该格快照 unit 数，scanned = 已扫数。
    total = scanned + remaining 恒成立。
    """
    by_cell: Dict[int, List[bool]] = {}
    for m in task.units or []:
        by_cell.setdefault(m.source_cell_id, []).append(m.is_scanned)

    cells = await load_cells_by_ids(session, by_cell.keys())
    rows = [
        SourceCellProgress(
            cell_id=cid,
            cell_code=cells[cid].code if cid in cells else str(cid),
            expected=len(flags),
            scanned=sum(1 for f in flags if f),
        )
        for cid, flags in by_cell.items()
    ]

    total = sum(r.expected for r in rows)
    scanned = sum(r.scanned for r in rows)
    return TaskProgress(
        task_id=task.id,
        status=str(task.status),
        total=total,
        scanned=scanned,
        remaining=total - scanned,
        active_source_cell_id=task.active_source_cell_id,
        cells=rows,
    )
