# rwms/api/routers/inventory.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.api.problem import raise_domain_problem
from rwms.api.routers.inventory_schemas import (
    ActorIn,
    CellClaimIn,
    CellSaveIn,
    CellScanIn,
    InventoryCellTaskOut,
    InventoryReportOut,
    InventoryStatusOut,
    SaveResultOut,
    ScanRecordOut,
)
from rwms.db.session import get_session
from rwms.models.enums import InventoryTaskStatus
from rwms.services.errors import DomainError
from rwms.services.inventory_service import InventoryService

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.post("/start", response_model=InventoryStatusOut)
async def start_inventory(
    payload: ActorIn,
    session: AsyncSession = Depends(get_session),
) -> InventoryStatusOut:
    """开启全仓盘点：之后所有移动类操作返回 423 LOCKED，直到盘点结束。"""
    svc = InventoryService(session)
    try:
        status = await svc.start_session(actor=payload.actor)
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return InventoryStatusOut.model_validate(status)


@router.post("/stop", response_model=InventoryStatusOut)
async def stop_inventory(
    payload: ActorIn,
    session: AsyncSession = Depends(get_session),
) -> InventoryStatusOut:
    svc = InventoryService(session)
    try:
        status = await svc.stop_session(actor=payload.actor)
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return InventoryStatusOut.model_validate(status)


@router.get("/status", response_model=InventoryStatusOut)
async def inventory_status(session: AsyncSession = Depends(get_session)) -> InventoryStatusOut:
    status = await InventoryService(session).get_status()
    # get_status 可能首次插入锁行
    await session.commit()
    return InventoryStatusOut.model_validate(status)


@router.get("/tasks", response_model=List[InventoryCellTaskOut])
async def list_inventory_tasks(
    status: Optional[InventoryTaskStatus] = None,
    session_no: Optional[int] = Query(None, ge=1),
    session: AsyncSession = Depends(get_session),
) -> List[InventoryCellTaskOut]:
    tasks = await InventoryService(session).list_cell_tasks(status=status, session_no=session_no)
    await session.commit()
    return [InventoryCellTaskOut.model_validate(t) for t in tasks]


@router.get("/report", response_model=InventoryReportOut)
async def inventory_report(
    session_no: Optional[int] = Query(None, ge=1),
    session: AsyncSession = Depends(get_session),
) -> InventoryReportOut:
    report = await InventoryService(session).session_report(session_no=session_no)
    await session.commit()
    return InventoryReportOut.model_validate(report)


@router.post("/cells/{cell_id}/claim", response_model=InventoryCellTaskOut)
async def claim_inventory_cell(
    cell_id: int,
    payload: CellClaimIn,
    session: AsyncSession = Depends(get_session),
) -> InventoryCellTaskOut:
    svc = InventoryService(session)
    try:
        task = await svc.claim_cell_task(cell_id=cell_id, worker_id=payload.worker_id)
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return InventoryCellTaskOut.model_validate(task)


@router.post("/cells/{cell_id}/scan", response_model=ScanRecordOut)
async def scan_inventory_barcode(
    cell_id: int,
    payload: CellScanIn,
    session: AsyncSession = Depends(get_session),
) -> ScanRecordOut:
    svc = InventoryService(session)
    try:
        rec = await svc.scan_barcode(cell_id=cell_id, worker_id=payload.worker_id, barcode=payload.barcode)
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return ScanRecordOut.model_validate(rec)


@router.post("/cells/{cell_id}/save", response_model=SaveResultOut)
async def save_inventory_cell(
    cell_id: int,
    payload: CellSaveIn,
    session: AsyncSession = Depends(get_session),
) -> SaveResultOut:
    """
    提交本格盘点：返回 missing / extra / unknown 差异，并按实物修正登记。
    最后一个格提交后盘点自动结束（session_closed=true）。
    """
    svc = InventoryService(session)
    try:
        result = await svc.save_cell_scan(
            cell_id=cell_id,
            worker_id=payload.worker_id,
            scanned_barcodes=payload.barcodes,
        )
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return SaveResultOut.model_validate(result)
