# rwms/api/routers/units_schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class UnitOut(BaseModel):
    id: int
    barcode: str
    status: str
    cell_id: Optional[int]
    rejection_count: int
    ticket: Optional[Dict[str, Any]] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnitMoveOut(BaseModel):
    id: int
    unit_id: int
    from_cell_id: Optional[int]
    to_cell_id: Optional[int]
    moved_by: str
    source: str
    note: Optional[str]
    attributes: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MoveUnitIn(BaseModel):
    barcode: str = Field(..., description="unit 条码")
    to_cell_code: str = Field(..., description="目标格编码（可带 CELL: 前缀）")
    from_cell_code: Optional[str] = Field(None, description="来源格编码；缺省取 unit 当前所在格")
    moved_by: str = Field(..., min_length=1, description="操作人")
    note: Optional[str] = None


class ReceiveUnitIn(BaseModel):
    barcode: str
    cell_code: str
    actor: str = Field(..., min_length=1)


class MoveResultOut(BaseModel):
    unit_id: int
    barcode: str
    from_cell_id: Optional[int]
    to_cell_id: Optional[int]
    status: str
    move_id: Optional[int]
    created: bool = False

    model_config = ConfigDict(from_attributes=True)
