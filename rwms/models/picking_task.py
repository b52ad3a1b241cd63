# rwms/models/picking_task.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rwms.db.base import Base, BigIntId
from rwms.models.enums import PickingTaskStatus, enum_values

if TYPE_CHECKING:
    from .picking_task_unit import PickingTaskUnit


def _PickingTaskUnit() -> "PickingTaskUnit":
    from .picking_task_unit import PickingTaskUnit

    return PickingTaskUnit


class PickingTask(Base):
    __tablename__ = "picking_tasks"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)

    status: Mapped[PickingTaskStatus] = mapped_column(
        Enum(
            PickingTaskStatus,
            name="picking_task_status",
            native_enum=False,
            values_callable=enum_values,
        ),
        nullable=False,
    )

    # 固定目标（cell_type 必须为 picking）
    target_cell_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("cells.id"), nullable=False)
    scenario: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[str] = mapped_column(Text, nullable=False)

    claimed_by: Mapped[Optional[str]] = mapped_column(Text)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    # 当前正在作业的来源格（工人扫码切换）
    active_source_cell_id: Mapped[Optional[int]] = mapped_column(BigIntId, ForeignKey("cells.id"))

    completed_by: Mapped[Optional[str]] = mapped_column(Text)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    canceled_by: Mapped[Optional[str]] = mapped_column(Text)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # follow_up 策略下，由哪张任务的剩余部分生成
    parent_task_id: Mapped[Optional[int]] = mapped_column(BigIntId, ForeignKey("picking_tasks.id"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    units: Mapped[List["PickingTaskUnit"]] = relationship(
        _PickingTaskUnit,
        back_populates="task",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="PickingTaskUnit.id",
    )

    __table_args__ = (
        Index("ix_picking_tasks_status", "status"),
        Index("ix_picking_tasks_target", "target_cell_id"),
        Index("ix_picking_tasks_claimed", "claimed_by"),
    )

    def __repr__(self) -> str:
        return (
            f"<PickingTask id={self.id} status={self.status} "
            f"target={self.target_cell_id} claimed_by={self.claimed_by}>"
        )
