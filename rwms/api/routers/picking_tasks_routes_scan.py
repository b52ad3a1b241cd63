# rwms/api/routers/picking_tasks_routes_scan.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.api.problem import raise_domain_problem
from rwms.api.routers.picking_tasks_schemas import PickingTaskScanIn, ScanResultOut
from rwms.db.session import get_session
from rwms.services.errors import DomainError
from rwms.services.picking_task_service import PickingTaskService


def register(router: APIRouter) -> None:
    @router.post("/{task_id}/scan", response_model=ScanResultOut)
    async def scan_unit_into_task(
        task_id: int,
        payload: PickingTaskScanIn,
        session: AsyncSession = Depends(get_session),
    ) -> ScanResultOut:
        svc = PickingTaskService(session)
        try:
            result = await svc.scan_unit(task_id=task_id, barcode=payload.barcode, worker_id=payload.worker_id)
            await session.commit()
        except DomainError as e:
            await session.rollback()
            raise_domain_problem(e)
        except Exception:
            await session.rollback()
            raise

        return ScanResultOut.model_validate(result)
