# rwms/models/inventory_scan.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rwms.db.base import Base, BigIntId


class InventoryScan(Base):
    """盘点格的扫码缓冲（持久化）；unit_id 为空表示条码不在 unit 登记表中。"""

    __tablename__ = "inventory_scans"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    cell_task_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("inventory_cell_tasks.id"), nullable=False
    )
    barcode: Mapped[str] = mapped_column(Text, nullable=False)
    unit_id: Mapped[Optional[int]] = mapped_column(BigIntId, ForeignKey("units.id"))
    scanned_by: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("cell_task_id", "barcode", name="uq_inventory_scans_task_barcode"),
    )
