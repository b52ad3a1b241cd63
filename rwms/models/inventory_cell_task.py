# rwms/models/inventory_cell_task.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rwms.db.base import Base, BigIntId, JsonCol
from rwms.models.enums import InventoryTaskStatus, enum_values


class InventoryCellTask(Base):
    __tablename__ = "inventory_cell_tasks"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    session_no: Mapped[int] = mapped_column(Integer, nullable=False)
    cell_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("cells.id"), nullable=False)

    status: Mapped[InventoryTaskStatus] = mapped_column(
        Enum(
            InventoryTaskStatus,
            name="inventory_task_status",
            native_enum=False,
            values_callable=enum_values,
        ),
        nullable=False,
    )

    # 开盘瞬间该格内 unit id 的快照
    expected_unit_ids: Mapped[List[int]] = mapped_column(JsonCol, nullable=False, default=list)

    claimed_by: Mapped[Optional[str]] = mapped_column(Text)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    scanned_by: Mapped[Optional[str]] = mapped_column(Text)
    scanned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # 保存扫描后的差异结果：{"missing": [...], "extra": [...], "unknown": [...], ...}
    result: Mapped[Optional[Dict[str, Any]]] = mapped_column(JsonCol)

    __table_args__ = (
        UniqueConstraint("session_no", "cell_id", name="uq_inventory_cell_tasks_session_cell"),
        Index("ix_inventory_cell_tasks_status", "session_no", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryCellTask session={self.session_no} cell={self.cell_id} "
            f"status={self.status} claimed_by={self.claimed_by}>"
        )
