# rwms/models/unit.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from rwms.db.base import Base, BigIntId, JsonCol
from rwms.models.enums import UnitStatus, enum_values


class Unit(Base):
    """
    可追踪的退货件。首次收货时创建，永不删除；
    cell_id / status 只通过移动类操作改变。
    """

    __tablename__ = "units"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    barcode: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    status: Mapped[UnitStatus] = mapped_column(
        Enum(UnitStatus, name="unit_status", native_enum=False, values_callable=enum_values),
        nullable=False,
    )
    cell_id: Mapped[Optional[int]] = mapped_column(BigIntId, ForeignKey("cells.id"), nullable=True)

    # 历史元数据：被拒次数 / 工单子记录
    rejection_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    ticket: Mapped[Optional[Dict[str, Any]]] = mapped_column(JsonCol, nullable=True)
    meta: Mapped[Dict[str, Any]] = mapped_column(JsonCol, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_units_cell", "cell_id"),
        Index("ix_units_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Unit id={self.id} barcode={self.barcode} cell={self.cell_id} status={self.status}>"
