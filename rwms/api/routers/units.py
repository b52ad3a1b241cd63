# rwms/api/routers/units.py
from __future__ import annotations

from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.api.problem import raise_domain_problem
from rwms.api.routers.units_schemas import (
    MoveResultOut,
    MoveUnitIn,
    ReceiveUnitIn,
    UnitMoveOut,
    UnitOut,
)
from rwms.db.session import get_session
from rwms.services.errors import DomainError, ValidationError
from rwms.services.scan_tokens import UnitRef
from rwms.services.unit_move_service import UnitMoveService

router = APIRouter(prefix="/units", tags=["units"])


def _unit_ref(ref: str, by: str) -> UnitRef:
    if by != "id":
        return ref
    if not ref.isdigit():
        raise ValidationError(f"Invalid unit id: {ref!r}", code="INVALID_UNIT_ID")
    return int(ref)


@router.post("/move", response_model=MoveResultOut)
async def move_unit(
    payload: MoveUnitIn,
    session: AsyncSession = Depends(get_session),
) -> MoveResultOut:
    """
    通用扫码移动：来源格 → 目标格。

    - 盘点进行中 → 423 LOCKED
    - 不在白名单的类型组合 → 409 ILLEGAL_TRANSITION
    - bin 来源但 unit 登记在另一个 bin → 409 WRONG_SOURCE_INSTANCE
    """
    svc = UnitMoveService(session)
    try:
        result = await svc.move_unit(
            unit_ref=payload.barcode,
            to_cell_code=payload.to_cell_code,
            expected_from_cell_code=payload.from_cell_code,
            moved_by=payload.moved_by,
            note=payload.note,
        )
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return MoveResultOut.model_validate(result)


@router.post("/receive", response_model=MoveResultOut)
async def receive_unit(
    payload: ReceiveUnitIn,
    session: AsyncSession = Depends(get_session),
) -> MoveResultOut:
    svc = UnitMoveService(session)
    try:
        result = await svc.receive_unit(barcode=payload.barcode, cell_code=payload.cell_code, actor=payload.actor)
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return MoveResultOut.model_validate(result)


@router.post("/surplus", response_model=MoveResultOut)
async def receive_surplus(
    payload: ReceiveUnitIn,
    session: AsyncSession = Depends(get_session),
) -> MoveResultOut:
    svc = UnitMoveService(session)
    try:
        result = await svc.receive_surplus(barcode=payload.barcode, cell_code=payload.cell_code, actor=payload.actor)
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return MoveResultOut.model_validate(result)


@router.get("/{ref}", response_model=UnitOut)
async def get_unit(
    ref: str,
    by: Literal["barcode", "id"] = Query("barcode", description="ref 按条码还是按 id 解析"),
    session: AsyncSession = Depends(get_session),
) -> UnitOut:
    unit = await UnitMoveService(session).get_unit(_unit_ref(ref, by))
    return UnitOut.model_validate(unit)


@router.get("/{ref}/history", response_model=List[UnitMoveOut])
async def get_unit_history(
    ref: str,
    by: Literal["barcode", "id"] = Query("barcode"),
    session: AsyncSession = Depends(get_session),
) -> List[UnitMoveOut]:
    rows = await UnitMoveService(session).history(_unit_ref(ref, by))
    return [UnitMoveOut.model_validate(r) for r in rows]
