# rwms/services/inventory_service.py
from __future__ import annotations

from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.enums import InventoryTaskStatus
from rwms.models.inventory_cell_task import InventoryCellTask
from rwms.services.inventory_cell_scan import claim_cell_task as _claim_cell_task
from rwms.services.inventory_cell_scan import save_cell_scan as _save_cell_scan
from rwms.services.inventory_cell_scan import scan_barcode as _scan_barcode
from rwms.services.inventory_session_ops import get_status as _get_status
from rwms.services.inventory_session_ops import list_cell_tasks as _list_cell_tasks
from rwms.services.inventory_session_ops import session_report as _session_report
from rwms.services.inventory_session_ops import start_session as _start_session
from rwms.services.inventory_session_ops import stop_session as _stop_session
from rwms.services.inventory_types import InventoryReport, InventoryStatus, SaveResult, ScanRecord


class InventoryService:
    """全仓盘点门面；与其它服务一样只 flush，不 commit。"""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def start_session(self, *, actor: str) -> InventoryStatus:
        return await _start_session(self.session, actor=actor)

    async def stop_session(self, *, actor: str) -> InventoryStatus:
        return await _stop_session(self.session, actor=actor)

    async def get_status(self) -> InventoryStatus:
        return await _get_status(self.session)

    async def list_cell_tasks(
        self,
        *,
        status: Optional[InventoryTaskStatus | str] = None,
        session_no: Optional[int] = None,
    ) -> List[InventoryCellTask]:
        return await _list_cell_tasks(self.session, status=status, session_no=session_no)

    async def claim_cell_task(self, *, cell_id: int, worker_id: str) -> InventoryCellTask:
        return await _claim_cell_task(self.session, cell_id=cell_id, worker_id=worker_id)

    async def scan_barcode(self, *, cell_id: int, worker_id: str, barcode: str) -> ScanRecord:
        return await _scan_barcode(self.session, cell_id=cell_id, worker_id=worker_id, barcode=barcode)

    async def save_cell_scan(
        self,
        *,
        cell_id: int,
        worker_id: Optional[str] = None,
        scanned_barcodes: Optional[Iterable[str]] = None,
    ) -> SaveResult:
        return await _save_cell_scan(
            self.session,
            cell_id=cell_id,
            worker_id=worker_id,
            scanned_barcodes=scanned_barcodes,
        )

    async def session_report(self, *, session_no: Optional[int] = None) -> InventoryReport:
        return await _session_report(self.session, session_no=session_no)
