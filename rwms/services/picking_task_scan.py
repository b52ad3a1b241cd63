# rwms/services/picking_task_scan.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.enums import PickingTaskStatus
from rwms.models.picking_task import PickingTask
from rwms.models.picking_task_unit import PickingTaskUnit
from rwms.services.errors import DuplicateScanError, StateConflictError
from rwms.services.picking_task_loaders import compute_progress, load_task
from rwms.services.picking_task_types import ScanResult
from rwms.services.scan_tokens import normalize_barcode
from rwms.services.unit_loaders import find_unit_by_barcode, load_cell

UTC = timezone.utc


def ensure_claimant(task: PickingTask, worker_id: Optional[str]) -> None:
    if worker_id and task.claimed_by and worker_id != task.claimed_by:
        raise StateConflictError(
            f"PickingTask {task.id} is claimed by {task.claimed_by}",
            code="NOT_CLAIMANT",
            context={"task_id": task.id, "claimed_by": task.claimed_by, "worker_id": worker_id},
        )


async def scan_unit(
    session: AsyncSession,
    *,
    task_id: int,
    barcode: str,
    worker_id: Optional[str] = None,
) -> ScanResult:
    """
    扫码拣货：只记录扫描状态，不移动 unit（移动统一在 finalize）。

    校验顺序：
      1) 条码属于本任务              否则 NOT_IN_TASK
      2) 尚未扫过                    否则 DUPLICATE
      3) 快照来源格 = 当前来源格      否则 WRONG_SOURCE_CELL
      4) unit 仍实际在该来源格        否则 UNIT_ELSEWHERE

    未先扫来源格时，以第一件的快照来源格作为当前来源格。
    """
    task = await load_task(session, task_id, for_update=True)
    if PickingTaskStatus(task.status) is not PickingTaskStatus.IN_PROGRESS:
        raise StateConflictError(
            f"PickingTask {task.id} status={task.status} cannot accept scans",
            code="INVALID_TASK_STATE",
            context={"task_id": task.id, "status": str(task.status)},
        )
    ensure_claimant(task, worker_id)

    code = normalize_barcode(barcode)
    unit = await find_unit_by_barcode(session, code)
    member: Optional[PickingTaskUnit] = None
    if unit is not None:
        member = next((m for m in task.units if m.unit_id == unit.id), None)
    if unit is None or member is None:
        raise StateConflictError(
            f"Barcode {code} is not part of task {task.id}",
            code="NOT_IN_TASK",
            context={"task_id": task.id, "barcode": code},
        )

    if member.is_scanned:
        raise DuplicateScanError(
            f"Unit {code} already scanned in task {task.id}",
            context={"task_id": task.id, "unit_id": unit.id, "scanned_by": member.scanned_by},
        )

    now = datetime.now(UTC)
    if task.active_source_cell_id is None:
        task.active_source_cell_id = member.source_cell_id
        task.updated_at = now

    if member.source_cell_id != task.active_source_cell_id:
        src = await load_cell(session, member.source_cell_id)
        raise StateConflictError(
            f"Unit {code} belongs to source cell {src.code}, not the active source cell",
            code="WRONG_SOURCE_CELL",
            context={
                "task_id": task.id,
                "unit_id": unit.id,
                "expected_cell": src.code,
                "active_source_cell_id": task.active_source_cell_id,
            },
        )

    if unit.cell_id != member.source_cell_id:
        raise StateConflictError(
            f"Unit {code} is no longer in its source cell",
            code="UNIT_ELSEWHERE",
            context={"task_id": task.id, "unit_id": unit.id, "actual_cell_id": unit.cell_id},
        )

    scanned_by = worker_id or task.claimed_by
    res = await session.execute(
        update(PickingTaskUnit)
        .where(PickingTaskUnit.id == member.id, PickingTaskUnit.scanned_at.is_(None))
        .values(scanned_at=now, scanned_by=scanned_by)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise DuplicateScanError(
            f"Unit {code} already scanned in task {task.id}",
            context={"task_id": task.id, "unit_id": unit.id},
        )
    await session.flush()

    task = await load_task(session, task.id)
    return ScanResult(
        task_id=task.id,
        unit_id=unit.id,
        barcode=unit.barcode,
        source_cell_id=member.source_cell_id,
        progress=await compute_progress(session, task),
    )
