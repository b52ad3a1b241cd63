# rwms/models/shipment.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from rwms.db.base import Base, BigIntId
from rwms.models.enums import ShipmentStatus, enum_values


class Shipment(Base):
    __tablename__ = "shipments"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    unit_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("units.id"), nullable=False)
    courier_name: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[ShipmentStatus] = mapped_column(
        Enum(ShipmentStatus, name="shipment_status", native_enum=False, values_callable=enum_values),
        nullable=False,
    )

    shipped_by: Mapped[str] = mapped_column(Text, nullable=False)
    shipped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    returned_by: Mapped[Optional[str]] = mapped_column(Text)
    returned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    return_reason: Mapped[Optional[str]] = mapped_column(Text)
    return_cell_id: Mapped[Optional[int]] = mapped_column(BigIntId, ForeignKey("cells.id"))

    __table_args__ = (
        Index("ix_shipments_unit", "unit_id"),
        Index("ix_shipments_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Shipment id={self.id} unit={self.unit_id} status={self.status}>"
