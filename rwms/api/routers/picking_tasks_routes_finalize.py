# rwms/api/routers/picking_tasks_routes_finalize.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.api.problem import raise_domain_problem
from rwms.api.routers.picking_tasks_schemas import (
    FinalizeResultOut,
    PickingTaskCancelIn,
    PickingTaskFinalizeIn,
    PickingTaskOut,
)
from rwms.db.session import get_session
from rwms.services.errors import DomainError
from rwms.services.picking_task_service import PickingTaskService


def register(router: APIRouter) -> None:
    @router.post("/{task_id}/finalize", response_model=FinalizeResultOut)
    async def finalize_picking_task(
        task_id: int,
        payload: PickingTaskFinalizeIn,
        session: AsyncSession = Depends(get_session),
    ) -> FinalizeResultOut:
        """
        完成任务：已扫描的 unit 移入目标格。

        单件失败在 failures 中返回（200），不会让整批失败；
        目的格不符 / 未扫描任何件 / 盘点锁 → Problem，任务保持原状。
        """
        svc = PickingTaskService(session)
        try:
            result = await svc.finalize_task(
                task_id=task_id,
                destination_cell_code=payload.destination_cell_code,
                worker_id=payload.worker_id,
            )
            await session.commit()
        except DomainError as e:
            await session.rollback()
            raise_domain_problem(e)
        except Exception:
            await session.rollback()
            raise

        return FinalizeResultOut.model_validate(result)

    @router.post("/{task_id}/cancel", response_model=PickingTaskOut)
    async def cancel_picking_task(
        task_id: int,
        payload: PickingTaskCancelIn,
        session: AsyncSession = Depends(get_session),
    ) -> PickingTaskOut:
        svc = PickingTaskService(session)
        try:
            task = await svc.cancel_task(task_id=task_id, actor=payload.actor)
            await session.commit()
        except DomainError as e:
            await session.rollback()
            raise_domain_problem(e)
        except Exception:
            await session.rollback()
            raise

        return PickingTaskOut.model_validate(task)
