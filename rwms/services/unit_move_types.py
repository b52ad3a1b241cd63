# rwms/services/unit_move_types.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class MoveResult:
    unit_id: int
    barcode: str
    from_cell_id: Optional[int]
    to_cell_id: Optional[int]
    status: str
    move_id: Optional[int]
    created: bool = False


@dataclass
class ShipmentResult:
    shipment_id: int
    unit_id: int
    barcode: str
    status: str
    courier_name: str
    cell_id: Optional[int] = None
