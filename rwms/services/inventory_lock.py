# rwms/services/inventory_lock.py
"""
全局盘点锁：inventory_session 单行（id=1）。

- 移动方：同一事务内 SELECT ... FOR SHARE 读该行，active=True → LockedError；
- 开盘方：UPDATE ... WHERE active = false（需要行排他锁）。

两者在行锁上串行化：并发到达的移动要么在开盘前完成，要么看到锁。
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.inventory_session import SESSION_ROW_ID, InventorySession
from rwms.obs.metrics import move_denied_total
from rwms.services.errors import LockedError

log = logging.getLogger("rwms.inventory")


async def ensure_session_row(session: AsyncSession) -> InventorySession:
    row = await session.get(InventorySession, SESSION_ROW_ID)
    if row is not None:
        return row
    try:
        async with session.begin_nested():
            row = InventorySession(id=SESSION_ROW_ID, active=False, session_no=0)
            session.add(row)
    except IntegrityError:
        # 并发初始化：别人已经插入
        log.debug("inventory_session row created concurrently")
    row = await session.get(InventorySession, SESSION_ROW_ID)
    if row is None:
        raise RuntimeError("inventory_session row is missing after initialisation")
    return row


async def load_session_row(
    session: AsyncSession,
    *,
    for_update: bool = False,
    for_share: bool = False,
) -> Optional[InventorySession]:
    stmt = select(InventorySession).where(InventorySession.id == SESSION_ROW_ID)
    if for_update:
        stmt = stmt.with_for_update()
    elif for_share:
        stmt = stmt.with_for_update(read=True)
    stmt = stmt.execution_options(populate_existing=True)
    return (await session.execute(stmt)).scalars().first()


async def is_locked(session: AsyncSession) -> bool:
    row = await load_session_row(session)
    return bool(row and row.active)


async def assert_unlocked(session: AsyncSession, *, op: str) -> None:
    """所有移动类操作的第一步。"""
    row = await load_session_row(session, for_share=True)
    if row is not None and row.active:
        move_denied_total.labels("LOCKED").inc()
        log.info("movement denied by inventory lock: op=%s session_no=%s", op, row.session_no)
        raise LockedError(context={"op": op, "session_no": row.session_no})
