# rwms/models/unit_move.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from rwms.db.base import Base, BigIntId, JsonCol


class UnitMove(Base):
    """
    移动台账（append-only）：每次成功移动写一行，永不更新 / 删除。

    to_cell_id 为空只有两种情况：出库（ship_out）与盘点判定“未找到”。
    """

    __tablename__ = "unit_moves"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    unit_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("units.id"), nullable=False)
    from_cell_id: Mapped[Optional[int]] = mapped_column(BigIntId, ForeignKey("cells.id"))
    to_cell_id: Mapped[Optional[int]] = mapped_column(BigIntId, ForeignKey("cells.id"))

    moved_by: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(Text, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text)
    attributes: Mapped[Dict[str, Any]] = mapped_column(JsonCol, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_unit_moves_unit_time", "unit_id", "created_at"),
        Index("ix_unit_moves_from_cell", "from_cell_id"),
        Index("ix_unit_moves_to_cell", "to_cell_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<UnitMove id={self.id} unit={self.unit_id} "
            f"{self.from_cell_id}->{self.to_cell_id} source={self.source}>"
        )
