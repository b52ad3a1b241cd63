# rwms/api/routers/picking_tasks_routes_create.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.api.problem import raise_domain_problem
from rwms.api.routers.picking_tasks_schemas import PickingTaskCreateIn, PickingTaskOut
from rwms.db.session import get_session
from rwms.services.errors import DomainError
from rwms.services.picking_task_service import PickingTaskService


def register(router: APIRouter) -> None:
    @router.post("", response_model=PickingTaskOut, status_code=201)
    async def create_picking_task(
        payload: PickingTaskCreateIn,
        session: AsyncSession = Depends(get_session),
    ) -> PickingTaskOut:
        """
        建拣货任务：unit 可按 id 或条码给出（可混用，自动去重）。
        每次调用都新建一张任务，不与已有任务合并。
        """
        svc = PickingTaskService(session)
        try:
            task = await svc.create_task(
                target_cell_id=payload.target_cell_id,
                created_by=payload.created_by,
                unit_ids=payload.unit_ids,
                barcodes=payload.barcodes,
                scenario=payload.scenario,
            )
            await session.commit()
        except DomainError as e:
            await session.rollback()
            raise_domain_problem(e)
        except Exception:
            await session.rollback()
            raise

        return PickingTaskOut.model_validate(task)
