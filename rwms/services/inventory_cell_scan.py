# rwms/services/inventory_cell_scan.py
from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.enums import CellType, InventoryTaskStatus, MoveSource, UnitStatus
from rwms.models.inventory_cell_task import InventoryCellTask
from rwms.models.inventory_scan import InventoryScan
from rwms.obs.metrics import inventory_cell_scans_total
from rwms.services.audit_writer import AuditEventWriter
from rwms.services.errors import (
    DomainError,
    DuplicateScanError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from rwms.services.inventory_session_ops import close_session, require_active
from rwms.services.inventory_types import CellScanDiff, SaveFailure, SaveResult, ScanRecord
from rwms.services.scan_tokens import normalize_barcode
from rwms.services.unit_loaders import find_unit_by_barcode, load_cell, load_units_by_barcodes, load_units_by_ids
from rwms.services.unit_move_apply import apply_unit_move
from rwms.services.unit_status import derive_status

log = logging.getLogger("rwms.inventory")

UTC = timezone.utc


async def _load_cell_task(
    session: AsyncSession,
    *,
    session_no: int,
    cell_id: int,
    for_update: bool = False,
) -> InventoryCellTask:
    stmt = (
        select(InventoryCellTask)
        .where(InventoryCellTask.session_no == session_no, InventoryCellTask.cell_id == cell_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    task = (await session.execute(stmt)).scalars().first()
    if task is None:
        raise NotFoundError(
            f"No inventory task for cell_id={cell_id} in session {session_no}",
            context={"cell_id": cell_id, "session_no": session_no},
        )
    return task


def _ensure_pending(task: InventoryCellTask) -> None:
    if InventoryTaskStatus(task.status) is not InventoryTaskStatus.PENDING:
        raise StateConflictError(
            f"Inventory task for cell_id={task.cell_id} is already {task.status}",
            code="INVALID_TASK_STATE",
            context={"cell_id": task.cell_id, "status": str(task.status)},
        )


def _ensure_claimant(task: InventoryCellTask, worker_id: Optional[str]) -> None:
    if worker_id and task.claimed_by and task.claimed_by != worker_id:
        raise StateConflictError(
            f"Cell task is claimed by {task.claimed_by}",
            code="NOT_CLAIMANT",
            context={"cell_id": task.cell_id, "claimed_by": task.claimed_by, "worker_id": worker_id},
        )


async def claim_cell_task(session: AsyncSession, *, cell_id: int, worker_id: str) -> InventoryCellTask:
    """
    领取盘点格：UPDATE ... WHERE status='pending' AND claimed_by IS NULL。
    同一工人重复领取幂等；他人已领取 → ALREADY_CLAIMED。
    """
    worker = (worker_id or "").strip()
    if not worker:
        raise ValidationError("worker_id is required", code="WORKER_REQUIRED")

    row = await require_active(session)
    res = await session.execute(
        update(InventoryCellTask)
        .where(
            InventoryCellTask.session_no == row.session_no,
            InventoryCellTask.cell_id == cell_id,
            InventoryCellTask.status == InventoryTaskStatus.PENDING,
            InventoryCellTask.claimed_by.is_(None),
        )
        .values(claimed_by=worker, claimed_at=datetime.now(UTC))
        .execution_options(synchronize_session=False)
    )

    task = await _load_cell_task(session, session_no=row.session_no, cell_id=cell_id)
    if res.rowcount == 1:
        log.info("inventory cell %s claimed by %s (session %s)", cell_id, worker, row.session_no)
        return task

    _ensure_pending(task)
    if task.claimed_by != worker:
        raise StateConflictError(
            f"Cell task is already claimed by {task.claimed_by}",
            code="ALREADY_CLAIMED",
            context={"cell_id": cell_id, "claimed_by": task.claimed_by},
        )
    return task


async def scan_barcode(
    session: AsyncSession,
    *,
    cell_id: int,
    worker_id: str,
    barcode: str,
) -> ScanRecord:
    """单次扫码写入持久缓冲；同格重复条码 → DUPLICATE，未登记条码照样记录。"""
    row = await require_active(session)
    task = await _load_cell_task(session, session_no=row.session_no, cell_id=cell_id)
    _ensure_pending(task)
    _ensure_claimant(task, worker_id)
    if task.claimed_by is None:
        task = await claim_cell_task(session, cell_id=cell_id, worker_id=worker_id)

    code = normalize_barcode(barcode)
    unit = await find_unit_by_barcode(session, code)

    try:
        async with session.begin_nested():
            session.add(
                InventoryScan(
                    cell_task_id=task.id,
                    barcode=code,
                    unit_id=unit.id if unit is not None else None,
                    scanned_by=worker_id,
                    created_at=datetime.now(UTC),
                )
            )
    except IntegrityError:
        raise DuplicateScanError(
            f"Barcode {code} already scanned for this cell",
            context={"cell_id": cell_id, "barcode": code},
        ) from None

    count = (
        await session.execute(
            select(func.count()).select_from(InventoryScan).where(InventoryScan.cell_task_id == task.id)
        )
    ).scalar_one()
    return ScanRecord(
        cell_id=cell_id,
        barcode=code,
        unit_id=unit.id if unit is not None else None,
        known=unit is not None,
        scanned_count=int(count),
    )


async def _buffered_barcodes(session: AsyncSession, task_id: int) -> List[str]:
    stmt = (
        select(InventoryScan.barcode)
        .where(InventoryScan.cell_task_id == task_id)
        .order_by(InventoryScan.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


def _normalize_scanned(raws: Iterable[Optional[str]], failures: List[SaveFailure]) -> List[str]:
    """逐条归一、保序去重；清洗后为空的条码记为 INVALID_BARCODE 失败，其余照常处理。"""
    out: List[str] = []
    seen: set[str] = set()
    for raw in raws:
        try:
            code = normalize_barcode(raw)
        except ValidationError as e:
            failures.append(SaveFailure(barcode=str(raw or ""), code=e.code, message=e.message))
            continue
        if code in seen:
            continue
        seen.add(code)
        out.append(code)
    return out


async def save_cell_scan(
    session: AsyncSession,
    *,
    cell_id: int,
    worker_id: Optional[str] = None,
    scanned_barcodes: Optional[Iterable[str]] = None,
) -> SaveResult:
    """
    提交一个格的盘点结果并按实物修正登记：

    - 扫到且已登记的 unit → 登记到本格（格变化才写台账）
    - 快照里有、没扫到、且仍登记在本格的 unit → 清空 cell，状态 not_located
      （已被别的格的盘点认领走的不动）
    - 本批次已无 pending 格 → 自动结束盘点

    单条失败（无法识别的条码、unit 已被并发移走）只记进 failures，不中断整格。
    """
    row = await require_active(session, for_update=True)
    session_no = int(row.session_no)
    task = await _load_cell_task(session, session_no=session_no, cell_id=cell_id, for_update=True)
    _ensure_pending(task)
    _ensure_claimant(task, worker_id)

    actor = worker_id or task.claimed_by or "inventory"
    cell = await load_cell(session, cell_id)
    cell_status = derive_status(CellType(cell.cell_type))

    failures: List[SaveFailure] = []
    if scanned_barcodes is not None:
        codes = _normalize_scanned(scanned_barcodes, failures)
    else:
        codes = await _buffered_barcodes(session, task.id)

    registry = await load_units_by_barcodes(session, codes)
    unknown = [c for c in codes if c not in registry]
    known_ids = [registry[c].id for c in codes if c in registry]
    known_set = set(known_ids)
    expected = [int(x) for x in (task.expected_unit_ids or [])]
    expected_set = set(expected)

    diff = CellScanDiff(
        missing=[uid for uid in expected if uid not in known_set],
        extra=[uid for uid in known_ids if uid not in expected_set],
        unknown=unknown,
    )

    attrs = {"session_no": session_no, "cell_task_id": task.id}
    placed: List[int] = []
    for c in codes:
        unit = registry.get(c)
        if unit is None:
            continue
        if unit.cell_id != cell.id:
            unit_id, barcode = unit.id, unit.barcode
            try:
                async with session.begin_nested():
                    await apply_unit_move(
                        session,
                        unit=unit,
                        expected_from_cell_id=unit.cell_id,
                        to_cell=cell,
                        moved_by=actor,
                        source=MoveSource.INVENTORY,
                        attributes=attrs,
                    )
            except DomainError as e:
                failures.append(SaveFailure(barcode=barcode, code=e.code, message=e.message, unit_id=unit_id))
                log.info("inventory cell %s: unit %s not placed (%s)", cell.code, barcode, e.code)
                continue
            placed.append(unit_id)
        elif UnitStatus(unit.status) is not cell_status:
            unit.status = cell_status
            unit.updated_at = datetime.now(UTC)

    cleared: List[int] = []
    missing_units = await load_units_by_ids(session, diff.missing)
    for uid in diff.missing:
        unit = missing_units.get(uid)
        if unit is None or unit.cell_id != cell.id:
            continue
        barcode = unit.barcode
        try:
            async with session.begin_nested():
                await apply_unit_move(
                    session,
                    unit=unit,
                    expected_from_cell_id=cell.id,
                    to_cell=None,
                    moved_by=actor,
                    source=MoveSource.INVENTORY,
                    status=UnitStatus.NOT_LOCATED,
                    note="not found during inventory",
                    attributes=attrs,
                )
        except DomainError as e:
            failures.append(SaveFailure(barcode=barcode, code=e.code, message=e.message, unit_id=uid))
            log.info("inventory cell %s: unit %s not cleared (%s)", cell.code, barcode, e.code)
            continue
        cleared.append(uid)

    now = datetime.now(UTC)
    task.status = InventoryTaskStatus.SCANNED
    task.claimed_by = task.claimed_by or actor
    task.scanned_by = actor
    task.scanned_at = now
    task.result = {
        **diff.as_dict(),
        "scanned": codes,
        "placed": placed,
        "cleared": cleared,
        "failures": [asdict(f) for f in failures],
    }
    await session.flush()
    inventory_cell_scans_total.inc()

    await AuditEventWriter.write(
        session,
        flow="INVENTORY",
        event="CELL_SCANNED",
        ref=str(session_no),
        actor=actor,
        meta={"cell_id": cell.id, "cell_code": cell.code, **diff.as_dict()},
    )
    log.info(
        "inventory cell %s saved: expected=%d scanned=%d missing=%d extra=%d unknown=%d",
        cell.code,
        len(expected),
        len(codes),
        len(diff.missing),
        len(diff.extra),
        len(diff.unknown),
    )

    pending = (
        await session.execute(
            select(func.count())
            .select_from(InventoryCellTask)
            .where(
                InventoryCellTask.session_no == session_no,
                InventoryCellTask.status == InventoryTaskStatus.PENDING,
            )
        )
    ).scalar_one()
    closed = False
    if int(pending) == 0:
        closed = await close_session(session, actor=actor, reason="auto")

    return SaveResult(
        cell_id=cell.id,
        session_no=session_no,
        diff=diff,
        expected_count=len(expected),
        scanned_count=len(codes),
        placed_unit_ids=placed,
        cleared_unit_ids=cleared,
        session_closed=closed,
        failures=failures,
    )
