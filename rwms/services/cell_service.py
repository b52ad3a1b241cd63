# rwms/services/cell_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.cell import Cell
from rwms.models.enums import CellType
from rwms.models.unit import Unit
from rwms.models.unit_move import UnitMove
from rwms.services.audit_writer import AuditEventWriter
from rwms.services.errors import StateConflictError, ValidationError
from rwms.services.movement_log import history_for_cell
from rwms.services.scan_tokens import normalize_cell_code
from rwms.services.unit_loaders import load_cell, load_cell_by_code, units_in_cell

log = logging.getLogger("rwms.cells")

UTC = timezone.utc


def _parse_cell_type(raw: CellType | str) -> CellType:
    try:
        return CellType(str(raw).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown cell type: {raw!r}",
            code="INVALID_CELL_TYPE",
            context={"allowed": [t.value for t in CellType]},
        ) from None


class CellService:
    """单元格主数据：建格 / 查询 / 封锁 / 停用。类型创建后不可变。"""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_cell(
        self,
        *,
        code: str,
        cell_type: CellType | str,
        attributes: Optional[Dict[str, Any]] = None,
        actor: Optional[str] = None,
    ) -> Cell:
        norm = normalize_cell_code(code)
        ctype = _parse_cell_type(cell_type)

        existing = (await self.session.execute(select(Cell.id).where(Cell.code == norm))).scalar()
        if existing is not None:
            raise StateConflictError(
                f"Cell code already exists: {norm}",
                code="CELL_EXISTS",
                context={"cell_code": norm, "cell_id": existing},
            )

        cell = Cell(
            code=norm,
            cell_type=ctype,
            is_active=True,
            is_blocked=False,
            attributes=dict(attributes or {}),
            created_at=datetime.now(UTC),
        )
        try:
            async with self.session.begin_nested():
                self.session.add(cell)
        except IntegrityError:
            raise StateConflictError(
                f"Cell code already exists: {norm}",
                code="CELL_EXISTS",
                context={"cell_code": norm},
            ) from None

        await AuditEventWriter.write(
            self.session,
            flow="CELL",
            event="CREATED",
            ref=norm,
            actor=actor,
            meta={"cell_id": cell.id, "cell_type": ctype.value},
        )
        log.info("cell created: %s (%s)", norm, ctype.value)
        return cell

    async def get_cell(self, cell_id: int) -> Cell:
        return await load_cell(self.session, cell_id)

    async def get_cell_by_code(self, code: str) -> Cell:
        return await load_cell_by_code(self.session, code)

    async def list_cells(
        self,
        *,
        cell_type: Optional[CellType | str] = None,
        active: Optional[bool] = None,
    ) -> List[Cell]:
        stmt = select(Cell)
        if cell_type is not None:
            stmt = stmt.where(Cell.cell_type == _parse_cell_type(cell_type))
        if active is not None:
            stmt = stmt.where(Cell.is_active.is_(active))
        stmt = stmt.order_by(Cell.code.asc())
        return list((await self.session.execute(stmt)).scalars().all())

    async def set_blocked(self, cell_id: int, blocked: bool, *, actor: Optional[str] = None) -> Cell:
        cell = await load_cell(self.session, cell_id)
        if bool(cell.is_blocked) != bool(blocked):
            cell.is_blocked = bool(blocked)
            await self.session.flush()
            await AuditEventWriter.write(
                self.session,
                flow="CELL",
                event="BLOCKED" if blocked else "UNBLOCKED",
                ref=cell.code,
                actor=actor,
                meta={"cell_id": cell.id},
            )
        return cell

    async def set_active(self, cell_id: int, active: bool, *, actor: Optional[str] = None) -> Cell:
        cell = await load_cell(self.session, cell_id)
        if bool(cell.is_active) != bool(active):
            cell.is_active = bool(active)
            await self.session.flush()
            await AuditEventWriter.write(
                self.session,
                flow="CELL",
                event="ACTIVATED" if active else "DEACTIVATED",
                ref=cell.code,
                actor=actor,
                meta={"cell_id": cell.id},
            )
        return cell

    async def units_in_cell(self, cell_id: int) -> List[Unit]:
        await load_cell(self.session, cell_id)
        return await units_in_cell(self.session, cell_id)

    async def history(self, cell_id: int, *, limit: int = 200) -> List[UnitMove]:
        await load_cell(self.session, cell_id)
        return await history_for_cell(self.session, cell_id, limit=limit)
