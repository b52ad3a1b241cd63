# rwms/services/picking_task_cancel.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.enums import PickingTaskStatus
from rwms.models.picking_task import PickingTask
from rwms.obs.metrics import picking_tasks_total
from rwms.services.audit_writer import AuditEventWriter
from rwms.services.picking_task_loaders import load_task
from rwms.services.picking_task_types import transition

log = logging.getLogger("rwms.picking")

UTC = timezone.utc


async def cancel_task(session: AsyncSession, *, task_id: int, actor: str) -> PickingTask:
    """取消任务：只改任务状态；已扫描的 unit 留在原处，不做任何移动。"""
    task = await load_task(session, task_id, for_update=True)
    prev = str(task.status)
    task.status = transition(task.status, PickingTaskStatus.CANCELED, task_id=task.id)

    now = datetime.now(UTC)
    task.canceled_by = actor
    task.canceled_at = now
    task.updated_at = now
    await session.flush()

    picking_tasks_total.labels("canceled").inc()
    await AuditEventWriter.write(
        session,
        flow="PICKING_TASK",
        event="CANCELED",
        ref=str(task.id),
        actor=actor,
        meta={"from_status": prev, "scanned": sum(1 for m in task.units if m.is_scanned)},
    )
    log.info("picking task %s canceled by %s (was %s)", task.id, actor, prev)
    return task
