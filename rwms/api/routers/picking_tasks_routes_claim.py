# rwms/api/routers/picking_tasks_routes_claim.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.api.problem import raise_domain_problem
from rwms.api.routers.picking_tasks_schemas import (
    PickingTaskClaimIn,
    PickingTaskOut,
    SourceCellIn,
    TaskProgressOut,
)
from rwms.db.session import get_session
from rwms.services.errors import DomainError
from rwms.services.picking_task_service import PickingTaskService


def register(router: APIRouter) -> None:
    @router.post("/{task_id}/claim", response_model=PickingTaskOut)
    async def claim_picking_task(
        task_id: int,
        payload: PickingTaskClaimIn,
        session: AsyncSession = Depends(get_session),
    ) -> PickingTaskOut:
        svc = PickingTaskService(session)
        try:
            task = await svc.claim_task(
                task_id=task_id,
                worker_id=payload.worker_id,
                source_cell_code=payload.source_cell_code,
            )
            await session.commit()
        except DomainError as e:
            await session.rollback()
            raise_domain_problem(e)
        except Exception:
            await session.rollback()
            raise

        return PickingTaskOut.model_validate(task)

    @router.post("/{task_id}/source-cell", response_model=TaskProgressOut)
    async def select_source_cell(
        task_id: int,
        payload: SourceCellIn,
        session: AsyncSession = Depends(get_session),
    ) -> TaskProgressOut:
        svc = PickingTaskService(session)
        try:
            progress = await svc.select_source_cell(
                task_id=task_id,
                worker_id=payload.worker_id,
                cell_code=payload.cell_code,
            )
            await session.commit()
        except DomainError as e:
            await session.rollback()
            raise_domain_problem(e)
        except Exception:
            await session.rollback()
            raise

        return TaskProgressOut.model_validate(progress)
