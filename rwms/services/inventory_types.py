# rwms/services/inventory_types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class InventoryStatus:
    active: bool
    session_no: int
    started_at: Optional[datetime]
    started_by: Optional[str]
    ended_at: Optional[datetime]
    end_reason: Optional[str]
    total: int = 0
    pending: int = 0
    scanned: int = 0


@dataclass
class CellScanDiff:
    """
    单格盘点差异：

    - missing : 快照里有、这次没扫到的 unit id
    - extra   : 扫到了、已登记、但不在快照里的 unit id
    - unknown : 扫到了、但 unit 登记表里根本没有的条码

    extra 与 unknown 互斥：未登记条码只进 unknown。
    """

    missing: List[int] = field(default_factory=list)
    extra: List[int] = field(default_factory=list)
    unknown: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"missing": list(self.missing), "extra": list(self.extra), "unknown": list(self.unknown)}


@dataclass
class ScanRecord:
    cell_id: int
    barcode: str
    unit_id: Optional[int]
    known: bool
    scanned_count: int


@dataclass
class SaveFailure:
    """单条处理失败：不可识别的条码（unit_id 为空）或某个 unit 的归位 / 清空没成功。"""

    barcode: str
    code: str
    message: str
    unit_id: Optional[int] = None


@dataclass
class SaveResult:
    cell_id: int
    session_no: int
    diff: CellScanDiff
    expected_count: int
    scanned_count: int
    placed_unit_ids: List[int]
    cleared_unit_ids: List[int]
    session_closed: bool
    failures: List[SaveFailure] = field(default_factory=list)


@dataclass
class CellReportRow:
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


@dataclass
class InventoryReport:
    session_no: int
    active: bool
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    end_reason: Optional[str]
    cells: List[CellReportRow]
