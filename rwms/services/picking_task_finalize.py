# rwms/services/picking_task_finalize.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rwms.core.config import get_settings
from rwms.models.cell import Cell
from rwms.models.enums import CellType, MoveSource, PickingTaskStatus
from rwms.models.picking_task import PickingTask
from rwms.obs.metrics import picking_tasks_total
from rwms.services.audit_writer import AuditEventWriter
from rwms.services.errors import DomainError, StateConflictError
from rwms.services.inventory_lock import assert_unlocked
from rwms.services.picking_task_create import PICKABLE_CELL_TYPES, build_task
from rwms.services.picking_task_loaders import load_task
from rwms.services.picking_task_scan import ensure_claimant
from rwms.services.picking_task_types import FinalizeFailure, FinalizeResult, transition
from rwms.services.scan_tokens import normalize_cell_code
from rwms.services.unit_loaders import load_cell, load_cells_by_ids, load_units_by_ids
from rwms.services.unit_move_apply import apply_unit_move, ensure_cell_available

log = logging.getLogger("rwms.picking")

UTC = timezone.utc


async def _spawn_follow_up(
    session: AsyncSession,
    *,
    task: PickingTask,
    target: Cell,
    remaining_unit_ids: List[int],
    actor: str,
) -> Optional[int]:
    """follow_up 策略：未扫的剩余部分另开一张 open 任务（仍在可拣格里的才带上）。"""
    units = await load_units_by_ids(session, remaining_unit_ids)
    cells = await load_cells_by_ids(session, (u.cell_id for u in units.values()))
    carry = [
        units[uid]
        for uid in remaining_unit_ids
        if uid in units
        and units[uid].cell_id in cells
        and CellType(cells[units[uid].cell_id].cell_type) in PICKABLE_CELL_TYPES
    ]
    if len(carry) < len(remaining_unit_ids):
        log.info(
            "picking task %s: %d remaining units no longer pickable, left out of follow-up",
            task.id,
            len(remaining_unit_ids) - len(carry),
        )
    if not carry:
        return None

    follow = await build_task(
        session,
        target=target,
        units=carry,
        created_by=actor,
        scenario=task.scenario,
        parent_task_id=task.id,
    )
    return follow.id


async def finalize_task(
    session: AsyncSession,
    *,
    task_id: int,
    destination_cell_code: str,
    worker_id: Optional[str] = None,
) -> FinalizeResult:
    """
    完成任务：把已扫描的 unit 移入目标 picking 格。

    前置校验（任一失败都不改任何数据）：
      - 盘点锁           → LOCKED
      - 任务须 in_progress → INVALID_TASK_STATE
      - 目的格须 = 任务目标 → DESTINATION_MISMATCH（可更正后重试）
      - 至少扫描一件      → NOTHING_SCANNED

    每件在独立保存点里 compare-and-set（按建单快照的来源格），
    单件失败只记录在 failures 里，不影响其它件；任务最终置为 done。
    """
    await assert_unlocked(session, op="finalize_picking_task")

    task = await load_task(session, task_id, for_update=True)
    transition(task.status, PickingTaskStatus.DONE, task_id=task.id)
    ensure_claimant(task, worker_id)

    target = await load_cell(session, task.target_cell_id)
    dest_code = normalize_cell_code(destination_cell_code)
    if dest_code != target.code:
        raise StateConflictError(
            f"Destination {dest_code} does not match task target {target.code}",
            code="DESTINATION_MISMATCH",
            context={"task_id": task.id, "destination": dest_code, "target": target.code},
        )

    scanned = [m for m in task.units if m.is_scanned]
    if not scanned:
        raise StateConflictError(
            f"PickingTask {task.id} has no scanned units",
            code="NOTHING_SCANNED",
            context={"task_id": task.id},
        )
    ensure_cell_available(target, role="TO")

    actor = worker_id or task.claimed_by or task.created_by
    units = await load_units_by_ids(session, (m.unit_id for m in scanned))
    now = datetime.now(UTC)

    moved: List[int] = []
    failures: List[FinalizeFailure] = []
    for member in scanned:
        unit = units[member.unit_id]
        unit_id, barcode = unit.id, unit.barcode
        try:
            async with session.begin_nested():
                await apply_unit_move(
                    session,
                    unit=unit,
                    expected_from_cell_id=member.source_cell_id,
                    to_cell=target,
                    moved_by=actor,
                    source=MoveSource.PICKING_TASK,
                    attributes={"task_id": task.id},
                )
                member.moved_at = now
        except DomainError as e:
            failures.append(FinalizeFailure(unit_id=unit_id, barcode=barcode, code=e.code, message=e.message))
            log.info("picking task %s: unit %s not moved (%s)", task.id, barcode, e.code)
            continue
        moved.append(unit_id)

    task.status = PickingTaskStatus.DONE
    task.completed_by = actor
    task.completed_at = now
    task.updated_at = now
    await session.flush()

    remaining = [m.unit_id for m in task.units if not m.is_scanned]

    follow_up_id: Optional[int] = None
    if remaining and get_settings().PICKING_REMAINDER_POLICY == "follow_up":
        follow_up_id = await _spawn_follow_up(
            session,
            task=task,
            target=target,
            remaining_unit_ids=remaining,
            actor=actor,
        )

    picking_tasks_total.labels("finalized").inc()
    await AuditEventWriter.write(
        session,
        flow="PICKING_TASK",
        event="FINALIZED",
        ref=str(task.id),
        actor=actor,
        meta={
            "target_cell": target.code,
            "moved_unit_ids": moved,
            "failures": [{"unit_id": f.unit_id, "code": f.code} for f in failures],
            "remaining_unit_ids": remaining,
            "follow_up_task_id": follow_up_id,
        },
    )
    log.info(
        "picking task %s finalized: moved=%d failed=%d remaining=%d",
        task.id,
        len(moved),
        len(failures),
        len(remaining),
    )

    return FinalizeResult(
        task_id=task.id,
        moved_count=len(moved),
        moved_unit_ids=moved,
        failures=failures,
        remaining_unit_ids=remaining,
        follow_up_task_id=follow_up_id,
    )
