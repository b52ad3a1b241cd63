# rwms/models/cell.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Boolean, DateTime, Enum, Index, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from rwms.db.base import Base, BigIntId, JsonCol
from rwms.models.enums import CellType, enum_values


class Cell(Base):
    __tablename__ = "cells"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)

    # 可扫码的唯一编码（统一大写、去掉 CELL: 前缀）
    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    # 创建后不可变
    cell_type: Mapped[CellType] = mapped_column(
        Enum(CellType, name="cell_type", native_enum=False, values_callable=enum_values),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))
    is_blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))

    attributes: Mapped[Dict[str, Any]] = mapped_column(JsonCol, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_cells_type", "cell_type"),)

    @property
    def is_available(self) -> bool:
        return bool(self.is_active) and not bool(self.is_blocked)

    def __repr__(self) -> str:
        return f"<Cell id={self.id} code={self.code} type={self.cell_type}>"
