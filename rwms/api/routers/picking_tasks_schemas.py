# rwms/api/routers/picking_tasks_schemas.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class PickingTaskUnitOut(BaseModel):
    id: int
    task_id: int
    unit_id: int
    source_cell_id: int
    scanned_at: Optional[datetime]
    scanned_by: Optional[str]
    moved_at: Optional[datetime]

    @computed_field  # type: ignore[misc]
    @property
    def scanned(self) -> bool:
        return self.scanned_at is not None

    model_config = ConfigDict(from_attributes=True)


class PickingTaskOut(BaseModel):
    id: int
    status: str
    target_cell_id: int
    scenario: Optional[str]
    created_by: str
    claimed_by: Optional[str]
    claimed_at: Optional[datetime]
    active_source_cell_id: Optional[int]
    completed_by: Optional[str]
    completed_at: Optional[datetime]
    canceled_by: Optional[str]
    canceled_at: Optional[datetime]
    parent_task_id: Optional[int]
    created_at: datetime
    updated_at: datetime
    units: List[PickingTaskUnitOut] = []

    model_config = ConfigDict(from_attributes=True)


class PickingTaskCreateIn(BaseModel):
    target_cell_id: int = Field(..., description="目标 picking 格 ID")
    unit_ids: List[int] = Field(default_factory=list)
    barcodes: List[str] = Field(default_factory=list)
    scenario: Optional[str] = Field(None, description="业务场景标签（不参与规则判断）")
    created_by: str = Field(..., min_length=1)


class PickingTaskClaimIn(BaseModel):
    worker_id: str = Field(..., min_length=1)
    source_cell_code: Optional[str] = None


class SourceCellIn(BaseModel):
    worker_id: str = Field(..., min_length=1)
    cell_code: str


class PickingTaskScanIn(BaseModel):
    barcode: str
    worker_id: Optional[str] = None


class PickingTaskFinalizeIn(BaseModel):
    destination_cell_code: str = Field(..., description="扫描到的目的格编码，须与任务目标一致")
    worker_id: Optional[str] = None


class PickingTaskCancelIn(BaseModel):
    actor: str = Field(..., min_length=1)


class SourceCellProgressOut(BaseModel):
    cell_id: int
    cell_code: str
    expected: int
    scanned: int
    complete: bool

    model_config = ConfigDict(from_attributes=True)


class TaskProgressOut(BaseModel):
    task_id: int
    status: str
    total: int
    scanned: int
    remaining: int
    active_source_cell_id: Optional[int]
    cells: List[SourceCellProgressOut]

    model_config = ConfigDict(from_attributes=True)


class ScanResultOut(BaseModel):
    task_id: int
    unit_id: int
    barcode: str
    source_cell_id: int
    progress: TaskProgressOut

    model_config = ConfigDict(from_attributes=True)


class FinalizeFailureOut(BaseModel):
    unit_id: int
    barcode: str
    code: str
    message: str

    model_config = ConfigDict(from_attributes=True)


class FinalizeResultOut(BaseModel):
    task_id: int
    moved_count: int
    moved_unit_ids: List[int]
    failures: List[FinalizeFailureOut]
    remaining_unit_ids: List[int]
    follow_up_task_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
