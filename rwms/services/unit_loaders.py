# rwms/services/unit_loaders.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.cell import Cell
from rwms.models.unit import Unit
from rwms.services.errors import NotFoundError
from rwms.services.scan_tokens import UnitRef, normalize_barcode, normalize_cell_code


async def load_unit(
    session: AsyncSession,
    ref: UnitRef,
    *,
    for_update: bool = False,
) -> Unit:
    """int → 按 id；str → 按条码（先归一化）。"""
    if isinstance(ref, int):
        stmt = select(Unit).where(Unit.id == ref)
    else:
        stmt = select(Unit).where(Unit.barcode == normalize_barcode(ref))
    if for_update:
        stmt = stmt.with_for_update()

    unit = (await session.execute(stmt)).scalars().first()
    if unit is None:
        raise NotFoundError(f"Unit not found: {ref!r}", context={"unit": str(ref)})
    return unit


async def find_unit_by_barcode(session: AsyncSession, barcode: str) -> Optional[Unit]:
    stmt = select(Unit).where(Unit.barcode == barcode)
    return (await session.execute(stmt)).scalars().first()


async def load_units_by_barcodes(session: AsyncSession, barcodes: Iterable[str]) -> Dict[str, Unit]:
    codes = list(barcodes)
    if not codes:
        return {}
    rows = (await session.execute(select(Unit).where(Unit.barcode.in_(codes)))).scalars().all()
    return {u.barcode: u for u in rows}


async def load_units_by_ids(session: AsyncSession, unit_ids: Iterable[int]) -> Dict[int, Unit]:
    ids = list(unit_ids)
    if not ids:
        return {}
    rows = (await session.execute(select(Unit).where(Unit.id.in_(ids)))).scalars().all()
    return {u.id: u for u in rows}


async def load_cell(session: AsyncSession, cell_id: int) -> Cell:
    cell = await session.get(Cell, cell_id)
    if cell is None:
        raise NotFoundError(f"Cell not found: id={cell_id}", context={"cell_id": cell_id})
    return cell


async def load_cell_by_code(session: AsyncSession, code: str) -> Cell:
    norm = normalize_cell_code(code)
    cell = (await session.execute(select(Cell).where(Cell.code == norm))).scalars().first()
    if cell is None:
        raise NotFoundError(f"Cell not found: code={norm}", context={"cell_code": norm})
    return cell


async def load_cells_by_ids(session: AsyncSession, cell_ids: Iterable[int]) -> Dict[int, Cell]:
    ids = [c for c in set(cell_ids) if c is not None]
    if not ids:
        return {}
    rows = (await session.execute(select(Cell).where(Cell.id.in_(ids)))).scalars().all()
    return {c.id: c for c in rows}


async def units_in_cell(session: AsyncSession, cell_id: int) -> List[Unit]:
    stmt = select(Unit).where(Unit.cell_id == cell_id).order_by(Unit.id.asc())
    return list((await session.execute(stmt)).scalars().all())
