# rwms/api/routers/picking_tasks_routes_get.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.api.routers.picking_tasks_schemas import PickingTaskOut, TaskProgressOut
from rwms.db.session import get_session
from rwms.models.enums import PickingTaskStatus
from rwms.services.picking_task_service import PickingTaskService


def register(router: APIRouter) -> None:
    @router.get("", response_model=List[PickingTaskOut])
    async def list_picking_tasks(
        status: Optional[PickingTaskStatus] = None,
        target_cell_id: Optional[int] = None,
        limit: int = Query(50, ge=1, le=500),
        session: AsyncSession = Depends(get_session),
    ) -> List[PickingTaskOut]:
        tasks = await PickingTaskService(session).list_tasks(
            status=status,
            target_cell_id=target_cell_id,
            limit=limit,
        )
        return [PickingTaskOut.model_validate(t) for t in tasks]

    @router.get("/{task_id}", response_model=PickingTaskOut)
    async def get_picking_task(
        task_id: int = Path(..., description="拣货任务 ID"),
        session: AsyncSession = Depends(get_session),
    ) -> PickingTaskOut:
        task = await PickingTaskService(session).get_task(task_id)
        return PickingTaskOut.model_validate(task)

    @router.get("/{task_id}/progress", response_model=TaskProgressOut)
    async def get_picking_task_progress(
        task_id: int,
        session: AsyncSession = Depends(get_session),
    ) -> TaskProgressOut:
        progress = await PickingTaskService(session).task_progress(task_id)
        return TaskProgressOut.model_validate(progress)
