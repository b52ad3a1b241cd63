# rwms/services/inventory_session_ops.py
"""
盘点批次（session）的开启 / 结束 / 状态 / 报表。

开启：单行 compare-and-set active false → true，session_no + 1，
      为每个启用中的格生成一条 pending 盘点任务（快照当前格内 unit id）。
结束：全部格扫描完成时自动结束（auto），或人工停止（manual）。
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.cell import Cell
from rwms.models.enums import InventoryTaskStatus
from rwms.models.inventory_cell_task import InventoryCellTask
from rwms.models.inventory_session import SESSION_ROW_ID, InventorySession
from rwms.models.unit import Unit
from rwms.services.audit_writer import AuditEventWriter
from rwms.services.errors import StateConflictError
from rwms.services.inventory_lock import ensure_session_row, load_session_row
from rwms.services.inventory_types import CellReportRow, InventoryReport, InventoryStatus
from rwms.services.unit_loaders import load_cells_by_ids

log = logging.getLogger("rwms.inventory")

UTC = timezone.utc


async def require_active(session: AsyncSession, *, for_update: bool = False) -> InventorySession:
    """
    当前必须有进行中的盘点。
    for_update=True 时对单例行加排他锁：保存格结果的事务彼此串行，
    最后一个格提交前一定能看到其余格已 scanned，从而自动结束盘点。
    """
    row = await load_session_row(session, for_update=for_update)
    if row is None or not row.active:
        raise StateConflictError("No inventory session is active", code="INVENTORY_NOT_ACTIVE")
    return row


async def _task_counts(session: AsyncSession, session_no: int) -> Dict[str, int]:
    rows = (
        await session.execute(
            select(InventoryCellTask.status, func.count())
            .where(InventoryCellTask.session_no == session_no)
            .group_by(InventoryCellTask.status)
        )
    ).all()
    return {str(status): int(n) for status, n in rows}


async def get_status(session: AsyncSession) -> InventoryStatus:
    await ensure_session_row(session)
    row = await load_session_row(session)
    counts = await _task_counts(session, row.session_no) if row.session_no else {}
    pending = counts.get(InventoryTaskStatus.PENDING.value, 0)
    scanned = counts.get(InventoryTaskStatus.SCANNED.value, 0)
    return InventoryStatus(
        active=bool(row.active),
        session_no=int(row.session_no),
        started_at=row.started_at,
        started_by=row.started_by,
        ended_at=row.ended_at,
        end_reason=row.end_reason,
        total=pending + scanned,
        pending=pending,
        scanned=scanned,
    )


async def start_session(session: AsyncSession, *, actor: str) -> InventoryStatus:
    await ensure_session_row(session)

    now = datetime.now(UTC)
    res = await session.execute(
        update(InventorySession)
        .where(InventorySession.id == SESSION_ROW_ID, InventorySession.active.is_(False))
        .values(
            active=True,
            session_no=InventorySession.session_no + 1,
            started_at=now,
            started_by=actor,
            ended_at=None,
            ended_by=None,
            end_reason=None,
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        row = await load_session_row(session)
        raise StateConflictError(
            "An inventory session is already active",
            code="ALREADY_ACTIVE",
            context={"session_no": row.session_no if row else None},
        )

    row = await load_session_row(session)
    session_no = int(row.session_no)

    cell_ids = list(
        (await session.execute(select(Cell.id).where(Cell.is_active.is_(True)).order_by(Cell.id))).scalars().all()
    )
    snapshot: Dict[int, List[int]] = {cid: [] for cid in cell_ids}
    if cell_ids:
        placed = (
            await session.execute(
                select(Unit.id, Unit.cell_id).where(Unit.cell_id.in_(cell_ids)).order_by(Unit.id)
            )
        ).all()
        for unit_id, cell_id in placed:
            snapshot[cell_id].append(int(unit_id))

    session.add_all(
        InventoryCellTask(
            session_no=session_no,
            cell_id=cid,
            status=InventoryTaskStatus.PENDING,
            expected_unit_ids=ids,
        )
        for cid, ids in snapshot.items()
    )
    await session.flush()

    await AuditEventWriter.write(
        session,
        flow="INVENTORY",
        event="STARTED",
        ref=str(session_no),
        actor=actor,
        meta={"cells": len(cell_ids), "units": sum(len(v) for v in snapshot.values())},
    )
    log.info("inventory session %s started by %s: %d cells", session_no, actor, len(cell_ids))
    return await get_status(session)


async def close_session(session: AsyncSession, *, actor: Optional[str], reason: str) -> bool:
    """active true → false；已经结束则返回 False。"""
    res = await session.execute(
        update(InventorySession)
        .where(InventorySession.id == SESSION_ROW_ID, InventorySession.active.is_(True))
        .values(active=False, ended_at=datetime.now(UTC), ended_by=actor, end_reason=reason)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        return False

    row = await load_session_row(session)
    await AuditEventWriter.write(
        session,
        flow="INVENTORY",
        event="ENDED",
        ref=str(row.session_no),
        actor=actor,
        meta={"reason": reason},
    )
    log.info("inventory session %s ended (%s)", row.session_no, reason)
    return True


async def stop_session(session: AsyncSession, *, actor: str) -> InventoryStatus:
    if not await close_session(session, actor=actor, reason="manual"):
        raise StateConflictError("No inventory session is active", code="INVENTORY_NOT_ACTIVE")
    return await get_status(session)


async def list_cell_tasks(
    session: AsyncSession,
    *,
    status: Optional[InventoryTaskStatus | str] = None,
    session_no: Optional[int] = None,
) -> List[InventoryCellTask]:
    if session_no is None:
        await ensure_session_row(session)
        row = await load_session_row(session)
        session_no = int(row.session_no)
    stmt = select(InventoryCellTask).where(InventoryCellTask.session_no == session_no)
    if status is not None:
        stmt = stmt.where(InventoryCellTask.status == InventoryTaskStatus(status))
    stmt = stmt.order_by(InventoryCellTask.cell_id.asc())
    return list((await session.execute(stmt)).scalars().all())


async def session_report(session: AsyncSession, *, session_no: Optional[int] = None) -> InventoryReport:
    await ensure_session_row(session)
    row = await load_session_row(session)
    current = session_no is None or session_no == row.session_no
    no = int(row.session_no) if session_no is None else int(session_no)

    tasks = await list_cell_tasks(session, session_no=no)
    cells = await load_cells_by_ids(session, (t.cell_id for t in tasks))

    out: List[CellReportRow] = []
    for t in tasks:
        result = t.result or {}
        out.append(
            CellReportRow(
                cell_id=t.cell_id,
                cell_code=cells[t.cell_id].code if t.cell_id in cells else str(t.cell_id),
                status=str(t.status),
                expected_count=len(t.expected_unit_ids or []),
                claimed_by=t.claimed_by,
                scanned_by=t.scanned_by,
                scanned_at=t.scanned_at,
                missing=list(result.get("missing", [])),
                extra=list(result.get("extra", [])),
                unknown=list(result.get("unknown", [])),
            )
        )

    return InventoryReport(
        session_no=no,
        active=bool(row.active) if current else False,
        started_at=row.started_at if current else None,
        ended_at=row.ended_at if current else None,
        end_reason=row.end_reason if current else None,
        cells=out,
    )
