# rwms/models/inventory_session.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from rwms.db.base import Base

# 全局唯一一行
SESSION_ROW_ID = 1


class InventorySession(Base):
    """
    全仓盘点的全局锁（单行表，id 固定为 1）。

    active=True 期间所有移动类操作必须拒绝；
    每次开启盘点 session_no + 1，盘点格任务按 session_no 归属。
    """

    __tablename__ = "inventory_session"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    session_no: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    started_by: Mapped[Optional[str]] = mapped_column(Text)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    ended_by: Mapped[Optional[str]] = mapped_column(Text)
    # auto：全部格扫描完成自动结束；manual：人工停止
    end_reason: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<InventorySession no={self.session_no} active={self.active}>"
