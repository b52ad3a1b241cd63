# rwms/services/unit_status.py
from __future__ import annotations

from typing import Dict, Optional

from rwms.models.enums import CellType, UnitStatus

# 状态 = 所在格类型（OUT 除外，只能由出库动作产生）
_STATUS_BY_CELL_TYPE: Dict[CellType, UnitStatus] = {
    CellType.BIN: UnitStatus.BIN,
    CellType.STORAGE: UnitStatus.STORED,
    CellType.SHIPPING: UnitStatus.SHIPPING,
    CellType.PICKING: UnitStatus.PICKING,
    CellType.REJECTED: UnitStatus.REJECTED,
    CellType.SURPLUS: UnitStatus.SURPLUS,
    CellType.RECEIVING: UnitStatus.RECEIVING,
}


def derive_status(cell_type: Optional[CellType | str]) -> UnitStatus:
    if cell_type is None:
        return UnitStatus.NOT_LOCATED
    return _STATUS_BY_CELL_TYPE[CellType(cell_type)]


def is_consistent(status: UnitStatus | str, cell_type: Optional[CellType | str]) -> bool:
    """unit 的状态与所在格是否一致；OUT 视为终态，不在格内时一致。"""
    st = UnitStatus(status)
    if st is UnitStatus.OUT:
        return cell_type is None
    return st is derive_status(cell_type)
