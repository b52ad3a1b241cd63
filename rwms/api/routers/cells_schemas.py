# rwms/api/routers/cells_schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CellOut(BaseModel):
    id: int
    code: str
    cell_type: str
    is_active: bool
    is_blocked: bool
    attributes: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CellCreateIn(BaseModel):
    code: str = Field(..., min_length=1, description="单元格编码（唯一，自动大写）")
    cell_type: str = Field(..., description="bin / storage / shipping / picking / rejected / surplus / receiving")
    attributes: Optional[Dict[str, Any]] = None
    actor: Optional[str] = None


class CellBlockIn(BaseModel):
    blocked: bool = True
    actor: Optional[str] = None


class CellActivateIn(BaseModel):
    active: bool = True
    actor: Optional[str] = None
