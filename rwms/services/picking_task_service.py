# rwms/services/picking_task_service.py
from __future__ import annotations

from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.enums import PickingTaskStatus
from rwms.models.picking_task import PickingTask
from rwms.services.picking_task_cancel import cancel_task as _cancel_task
from rwms.services.picking_task_claim import claim_task as _claim_task
from rwms.services.picking_task_claim import select_source_cell as _select_source_cell
from rwms.services.picking_task_create import create_task as _create_task
from rwms.services.picking_task_finalize import finalize_task as _finalize_task
from rwms.services.picking_task_loaders import compute_progress as _compute_progress
from rwms.services.picking_task_loaders import list_tasks as _list_tasks
from rwms.services.picking_task_loaders import load_task as _load_task
from rwms.services.picking_task_scan import scan_unit as _scan_unit
from rwms.services.picking_task_types import FinalizeResult, ScanResult, TaskProgress


class PickingTaskService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_task(
        self,
        *,
        target_cell_id: int,
        created_by: str,
        unit_ids: Optional[Iterable[int]] = None,
        barcodes: Optional[Iterable[str]] = None,
        scenario: Optional[str] = None,
    ) -> PickingTask:
        return await _create_task(
            self.session,
            target_cell_id=target_cell_id,
            created_by=created_by,
            unit_ids=unit_ids,
            barcodes=barcodes,
            scenario=scenario,
        )

    async def claim_task(
        self,
        *,
        task_id: int,
        worker_id: str,
        source_cell_code: Optional[str] = None,
    ) -> PickingTask:
        return await _claim_task(
            self.session,
            task_id=task_id,
            worker_id=worker_id,
            source_cell_code=source_cell_code,
        )

    async def select_source_cell(self, *, task_id: int, worker_id: str, cell_code: str) -> TaskProgress:
        return await _select_source_cell(
            self.session,
            task_id=task_id,
            worker_id=worker_id,
            cell_code=cell_code,
        )

    async def scan_unit(
        self,
        *,
        task_id: int,
        barcode: str,
        worker_id: Optional[str] = None,
    ) -> ScanResult:
        return await _scan_unit(self.session, task_id=task_id, barcode=barcode, worker_id=worker_id)

    async def task_progress(self, task_id: int) -> TaskProgress:
        task = await _load_task(self.session, task_id)
        return await _compute_progress(self.session, task)

    async def finalize_task(
        self,
        *,
        task_id: int,
        destination_cell_code: str,
        worker_id: Optional[str] = None,
    ) -> FinalizeResult:
        return await _finalize_task(
            self.session,
            task_id=task_id,
            destination_cell_code=destination_cell_code,
            worker_id=worker_id,
        )

    async def cancel_task(self, *, task_id: int, actor: str) -> PickingTask:
        return await _cancel_task(self.session, task_id=task_id, actor=actor)

    async def get_task(self, task_id: int) -> PickingTask:
        return await _load_task(self.session, task_id)

    async def list_tasks(
        self,
        *,
        status: Optional[PickingTaskStatus | str] = None,
        target_cell_id: Optional[int] = None,
        limit: int = 100,
    ) -> List[PickingTask]:
        return await _list_tasks(
            self.session,
            status=status,
            target_cell_id=target_cell_id,
            limit=limit,
        )
