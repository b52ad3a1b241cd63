# rwms/models/picking_task_unit.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rwms.db.base import Base, BigIntId

if TYPE_CHECKING:
    from .picking_task import PickingTask


def _PickingTask() -> "PickingTask":
    from .picking_task import PickingTask

    return PickingTask


class PickingTaskUnit(Base):
    __tablename__ = "picking_task_units"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("picking_tasks.id"),
        nullable=False,
    )
    unit_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("units.id"), nullable=False)

    # 建单时 unit 所在格的快照，之后不再改变
    source_cell_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("cells.id"), nullable=False)

    # 扫描状态持久化（不依赖终端内存）
    scanned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    scanned_by: Mapped[Optional[str]] = mapped_column(Text)
    # finalize 成功移动到目标格的时间
    moved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    task: Mapped["PickingTask"] = relationship(
        _PickingTask,
        back_populates="units",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("task_id", "unit_id", name="uq_picking_task_units_task_unit"),
        Index("ix_picking_task_units_unit", "unit_id"),
    )

    @property
    def is_scanned(self) -> bool:
        return self.scanned_at is not None

    def __repr__(self) -> str:
        return (
            f"<PickingTaskUnit task={self.task_id} unit={self.unit_id} "
            f"src={self.source_cell_id} scanned={self.is_scanned}>"
        )
