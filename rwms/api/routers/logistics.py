# rwms/api/routers/logistics.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.api.problem import raise_domain_problem
from rwms.db.session import get_session
from rwms.services.errors import DomainError
from rwms.services.unit_move_service import UnitMoveService

router = APIRouter(prefix="/logistics", tags=["logistics"])


class ShipOutIn(BaseModel):
    barcode: str
    courier_name: str = Field(..., min_length=1)
    actor: str = Field(..., min_length=1)


class ReturnFromOutIn(BaseModel):
    shipment_id: int
    target_cell_code: str
    actor: str = Field(..., min_length=1)
    reason: Optional[str] = None


class ShipmentResultOut(BaseModel):
    shipment_id: int
    unit_id: int
    barcode: str
    status: str
    courier_name: str
    cell_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


@router.post("/ship-out", response_model=ShipmentResultOut)
async def ship_out(
    payload: ShipOutIn,
    session: AsyncSession = Depends(get_session),
) -> ShipmentResultOut:
    """出库：unit 必须在 picking 格；成功后状态为 out，离开单元格登记。"""
    svc = UnitMoveService(session)
    try:
        result = await svc.ship_out(unit_ref=payload.barcode, courier_name=payload.courier_name, actor=payload.actor)
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return ShipmentResultOut.model_validate(result)


@router.post("/return-from-out", response_model=ShipmentResultOut)
async def return_from_out(
    payload: ReturnFromOutIn,
    session: AsyncSession = Depends(get_session),
) -> ShipmentResultOut:
    svc = UnitMoveService(session)
    try:
        result = await svc.return_from_out(
            shipment_id=payload.shipment_id,
            target_cell_code=payload.target_cell_code,
            actor=payload.actor,
            reason=payload.reason,
        )
        await session.commit()
    except DomainError as e:
        await session.rollback()
        raise_domain_problem(e)
    except Exception:
        await session.rollback()
        raise

    return ShipmentResultOut.model_validate(result)
