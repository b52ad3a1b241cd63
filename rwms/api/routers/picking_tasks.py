# rwms/api/routers/picking_tasks.py
from __future__ import annotations

from fastapi import APIRouter

from rwms.api.routers import picking_tasks_routes_claim
from rwms.api.routers import picking_tasks_routes_create
from rwms.api.routers import picking_tasks_routes_finalize
from rwms.api.routers import picking_tasks_routes_get
from rwms.api.routers import picking_tasks_routes_scan

router = APIRouter(prefix="/picking-tasks", tags=["picking-tasks"])


def _register_all_routes() -> None:
    picking_tasks_routes_create.register(router)
    picking_tasks_routes_get.register(router)
    picking_tasks_routes_claim.register(router)
    picking_tasks_routes_scan.register(router)
    picking_tasks_routes_finalize.register(router)


_register_all_routes()
