# rwms/api/routers/cells.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.api.problem import raise_domain_problem
from rwms.api.routers.cells_schemas import CellActivateIn, CellBlockIn, CellCreateIn, CellOut
from rwms.api.routers.units_schemas import UnitMoveOut, UnitOut
from rwms.db.session import get_session
from rwms.services.cell_service import CellService
from rwms.services.errors import DomainError

router = APIRouter(prefix="/cells", tags=["cells"])


@router.post("", response_model=CellOut, status_code=201)
async def create_cell(
    payload: CellCreateIn,
    session: AsyncSession = Depends(get_session),
) -> CellOut:
    svc = CellService(session)
    try:
        cell = await svc.create_cell(
            code=payload.code,
            cell_type=payload.cell_type,
            attributes=payload.attributes,
            actor=payload.actor,
        )
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return CellOut.model_validate(cell)


@router.get("", response_model=List[CellOut])
async def list_cells(
    cell_type: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_session),
) -> List[CellOut]:
    cells = await CellService(session).list_cells(cell_type=cell_type, active=active)
    return [CellOut.model_validate(c) for c in cells]


@router.get("/{code}", response_model=CellOut)
async def get_cell_by_code(
    code: str,
    session: AsyncSession = Depends(get_session),
) -> CellOut:
    cell = await CellService(session).get_cell_by_code(code)
    return CellOut.model_validate(cell)


@router.post("/{cell_id}/block", response_model=CellOut)
async def block_cell(
    cell_id: int,
    payload: CellBlockIn,
    session: AsyncSession = Depends(get_session),
) -> CellOut:
    svc = CellService(session)
    try:
        cell = await svc.set_blocked(cell_id, payload.blocked, actor=payload.actor)
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return CellOut.model_validate(cell)


@router.post("/{cell_id}/activate", response_model=CellOut)
async def activate_cell(
    cell_id: int,
    payload: CellActivateIn,
    session: AsyncSession = Depends(get_session),
) -> CellOut:
    svc = CellService(session)
    try:
        cell = await svc.set_active(cell_id, payload.active, actor=payload.actor)
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return CellOut.model_validate(cell)


@router.get("/{cell_id}/units", response_model=List[UnitOut])
async def list_units_in_cell(
    cell_id: int,
    session: AsyncSession = Depends(get_session),
) -> List[UnitOut]:
    units = await CellService(session).units_in_cell(cell_id)
    return [UnitOut.model_validate(u) for u in units]


@router.get("/{cell_id}/history", response_model=List[UnitMoveOut])
async def cell_history(
    cell_id: int,
    limit: int = Query(200, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
) -> List[UnitMoveOut]:
    rows = await CellService(session).history(cell_id, limit=limit)
    return [UnitMoveOut.model_validate(r) for r in rows]
