# rwms/api/routers/inventory_schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActorIn(BaseModel):
    actor: str = Field(..., min_length=1)


class InventoryStatusOut(BaseModel):
    active: bool
    session_no: int
    started_at: Optional[datetime]
    started_by: Optional[str]
    ended_at: Optional[datetime]
    end_reason: Optional[str]
    total: int
    pending: int
    scanned: int

    model_config = ConfigDict(from_attributes=True)


class InventoryCellTaskOut(BaseModel):
    id: int
    session_no: int
    cell_id: int
    status: str
    expected_unit_ids: List[int]
    claimed_by: Optional[str]
    claimed_at: Optional[datetime]
    scanned_by: Optional[str]
    scanned_at: Optional[datetime]
    result: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)


class CellClaimIn(BaseModel):
    worker_id: str = Field(..., min_length=1)


class CellScanIn(BaseModel):
    worker_id: str = Field(..., min_length=1)
    barcode: str


class CellSaveIn(BaseModel):
    worker_id: Optional[str] = None
    barcodes: Optional[List[str]] = Field(
        None,
        description="本格扫到的全部条码；缺省使用 /scan 逐条写入的缓冲",
    )


class ScanRecordOut(BaseModel):
    cell_id: int
    barcode: str
    unit_id: Optional[int]
    known: bool
    scanned_count: int

    model_config = ConfigDict(from_attributes=True)


class CellScanDiffOut(BaseModel):
    missing: List[int]
    extra: List[int]
    unknown: List[str]

    model_config = ConfigDict(from_attributes=True)


class SaveFailureOut(BaseModel):
    barcode: str
    code: str
    message: str
    unit_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class SaveResultOut(BaseModel):
    cell_id: int
    session_no: int
    diff: CellScanDiffOut
    expected_count: int
    scanned_count: int
    placed_unit_ids: List[int]
    cleared_unit_ids: List[int]
    session_closed: bool
    failures: List[SaveFailureOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class CellReportRowOut(BaseModel):
    cell_id: int
    cell_code: str
    status: str
    expected_count: int
    claimed_by: Optional[str]
    scanned_by: Optional[str]
    scanned_at: Optional[datetime]
    missing: List[int]
    extra: List[int]
    unknown: List[str]

    model_config = ConfigDict(from_attributes=True)


class InventoryReportOut(BaseModel):
    session_no: int
    active: bool
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    end_reason: Optional[str]
    cells: List[CellReportRowOut]

    model_config = ConfigDict(from_attributes=True)
