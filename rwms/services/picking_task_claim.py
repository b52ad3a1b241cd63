# rwms/services/picking_task_claim.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.enums import PickingTaskStatus
from rwms.models.picking_task import PickingTask
from rwms.obs.metrics import picking_tasks_total
from rwms.services.audit_writer import AuditEventWriter
from rwms.services.errors import StateConflictError, ValidationError
from rwms.services.picking_task_loaders import compute_progress, load_task
from rwms.services.picking_task_types import TaskProgress, transition
from rwms.services.unit_loaders import load_cell_by_code

log = logging.getLogger("rwms.picking")

UTC = timezone.utc


def _require_worker(worker_id: Optional[str]) -> str:
    w = (worker_id or "").strip()
    if not w:
        raise ValidationError("worker_id is required", code="WORKER_REQUIRED")
    return w


async def _snapshot_source_cell_id(session: AsyncSession, task: PickingTask, cell_code: str) -> int:
    cell = await load_cell_by_code(session, cell_code)
    if cell.id not in {m.source_cell_id for m in task.units}:
        raise StateConflictError(
            f"Cell {cell.code} is not a source cell of task {task.id}",
            code="WRONG_SOURCE_CELL",
            context={"task_id": task.id, "cell_code": cell.code},
        )
    return cell.id


async def claim_task(
    session: AsyncSession,
    *,
    task_id: int,
    worker_id: str,
    source_cell_code: Optional[str] = None,
) -> PickingTask:
    """
    领取任务：一条 UPDATE ... WHERE status='open'，命中 1 行者获胜。

    - 同一工人重复领取 → 幂等返回
    - 已被他人领取 → ALREADY_CLAIMED
    - done / canceled → INVALID_TASK_STATE
    """
    worker = _require_worker(worker_id)

    source_cell_id: Optional[int] = None
    if source_cell_code:
        task = await load_task(session, task_id)
        source_cell_id = await _snapshot_source_cell_id(session, task, source_cell_code)

    now = datetime.now(UTC)
    values = {
        "status": PickingTaskStatus.IN_PROGRESS,
        "claimed_by": worker,
        "claimed_at": now,
        "updated_at": now,
    }
    if source_cell_id is not None:
        values["active_source_cell_id"] = source_cell_id

    res = await session.execute(
        update(PickingTask)
        .where(PickingTask.id == task_id, PickingTask.status == PickingTaskStatus.OPEN)
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    if res.rowcount == 1:
        picking_tasks_total.labels("claimed").inc()
        await AuditEventWriter.write(
            session,
            flow="PICKING_TASK",
            event="CLAIMED",
            ref=str(task_id),
            actor=worker,
            meta={"source_cell_id": source_cell_id},
        )
        log.info("picking task %s claimed by %s", task_id, worker)
        return await load_task(session, task_id)

    task = await load_task(session, task_id)
    status = PickingTaskStatus(task.status)
    if status is PickingTaskStatus.IN_PROGRESS:
        if task.claimed_by != worker:
            raise StateConflictError(
                f"PickingTask {task_id} is already claimed by {task.claimed_by}",
                code="ALREADY_CLAIMED",
                context={"task_id": task_id, "claimed_by": task.claimed_by},
            )
        if source_cell_id is not None and task.active_source_cell_id != source_cell_id:
            task.active_source_cell_id = source_cell_id
            task.updated_at = now
            await session.flush()
        return task

    transition(status, PickingTaskStatus.IN_PROGRESS, task_id=task_id)
    return task


async def select_source_cell(
    session: AsyncSession,
    *,
    task_id: int,
    worker_id: str,
    cell_code: str,
) -> TaskProgress:
    """
    扫来源格：任务仍 open 时顺带领取；之后由领取人切换当前来源格。
    来源格必须是建单快照里出现过的格。
    """
    worker = _require_worker(worker_id)
    task = await load_task(session, task_id)
    cell_id = await _snapshot_source_cell_id(session, task, cell_code)

    task = await claim_task(session, task_id=task_id, worker_id=worker)
    if task.active_source_cell_id != cell_id:
        task.active_source_cell_id = cell_id
        task.updated_at = datetime.now(UTC)
        await session.flush()

    return await compute_progress(session, task)
