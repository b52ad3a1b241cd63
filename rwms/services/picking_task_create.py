# rwms/services/picking_task_create.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.cell import Cell
from rwms.models.enums import CellType, PickingTaskStatus
from rwms.models.picking_task import PickingTask
from rwms.models.picking_task_unit import PickingTaskUnit
from rwms.models.unit import Unit
from rwms.obs.metrics import picking_tasks_total
from rwms.services.audit_writer import AuditEventWriter
from rwms.services.errors import NotFoundError, ValidationError
from rwms.services.picking_task_loaders import load_task
from rwms.services.scan_tokens import normalize_barcodes
from rwms.services.unit_loaders import load_cell, load_cells_by_ids, load_units_by_barcodes, load_units_by_ids
from rwms.services.unit_move_apply import ensure_cell_available

log = logging.getLogger("rwms.picking")

UTC = timezone.utc

# 只有 storage / shipping 里的件可以进拣货任务
PICKABLE_CELL_TYPES = frozenset({CellType.STORAGE, CellType.SHIPPING})


async def _resolve_units(
    session: AsyncSession,
    *,
    unit_ids: Iterable[int],
    barcodes: Iterable[str],
) -> List[Unit]:
    ids = list(dict.fromkeys(int(x) for x in unit_ids))
    codes = normalize_barcodes(barcodes)

    by_id = await load_units_by_ids(session, ids)
    by_code = await load_units_by_barcodes(session, codes)

    missing = [str(i) for i in ids if i not in by_id] + [c for c in codes if c not in by_code]
    if missing:
        raise NotFoundError(f"Units not found: {', '.join(missing)}", context={"missing": missing})

    out: List[Unit] = []
    seen: set[int] = set()
    for u in [by_id[i] for i in ids] + [by_code[c] for c in codes]:
        if u.id in seen:
            continue
        seen.add(u.id)
        out.append(u)
    return out


async def check_target_cell(session: AsyncSession, target_cell_id: int) -> Cell:
    target = await load_cell(session, target_cell_id)
    if CellType(target.cell_type) is not CellType.PICKING:
        raise ValidationError(
            f"Target cell {target.code} is {target.cell_type}, expected picking",
            code="TARGET_NOT_PICKING",
            context={"cell_id": target.id, "cell_type": str(target.cell_type)},
        )
    ensure_cell_available(target, role="TO")
    return target


async def build_task(
    session: AsyncSession,
    *,
    target: Cell,
    units: Sequence[Unit],
    created_by: str,
    scenario: Optional[str] = None,
    parent_task_id: Optional[int] = None,
) -> PickingTask:
    """落库一张新任务；每个 unit 的当前格作为 source_cell_id 快照。"""
    now = datetime.now(UTC)
    task = PickingTask(
        status=PickingTaskStatus.OPEN,
        target_cell_id=target.id,
        scenario=scenario,
        created_by=created_by,
        parent_task_id=parent_task_id,
        created_at=now,
        updated_at=now,
    )
    task.units = [PickingTaskUnit(unit_id=u.id, source_cell_id=u.cell_id) for u in units]
    session.add(task)
    await session.flush()

    picking_tasks_total.labels("created").inc()
    await AuditEventWriter.write(
        session,
        flow="PICKING_TASK",
        event="CREATED",
        ref=str(task.id),
        actor=created_by,
        meta={
            "target_cell": target.code,
            "unit_ids": [u.id for u in units],
            "scenario": scenario,
            "parent_task_id": parent_task_id,
        },
    )
    return task


async def create_task(
    session: AsyncSession,
    *,
    target_cell_id: int,
    created_by: str,
    unit_ids: Optional[Iterable[int]] = None,
    barcodes: Optional[Iterable[str]] = None,
    scenario: Optional[str] = None,
) -> PickingTask:
    """
    建拣货任务：

    - 目标格必须存在、可用且类型为 picking
    - unit 必须全部存在，且当前位于 storage / shipping 格
    - 总是新建一张任务（同一批 unit 重复下单也不合并）
    """
    target = await check_target_cell(session, target_cell_id)

    units = await _resolve_units(session, unit_ids=unit_ids or [], barcodes=barcodes or [])
    if not units:
        raise ValidationError("Picking task needs at least one unit", code="EMPTY_TASK")

    cells = await load_cells_by_ids(session, (u.cell_id for u in units))
    bad = [
        {"unit_id": u.id, "barcode": u.barcode, "cell_id": u.cell_id, "status": str(u.status)}
        for u in units
        if u.cell_id is None or CellType(cells[u.cell_id].cell_type) not in PICKABLE_CELL_TYPES
    ]
    if bad:
        raise ValidationError(
            "Only units in storage or shipping cells can be picked",
            code="UNIT_NOT_PICKABLE",
            context={"units": bad},
        )

    task = await build_task(
        session,
        target=target,
        units=units,
        created_by=created_by,
        scenario=scenario,
    )
    log.info("picking task %s created: %d units -> %s", task.id, len(units), target.code)
    return await load_task(session, task.id)
