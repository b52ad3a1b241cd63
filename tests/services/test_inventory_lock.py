# tests/services/test_inventory_lock.py
from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.models.inventory_session import SESSION_ROW_ID
from rwms.services.inventory_lock import ensure_session_row, is_locked

pytestmark = pytest.mark.asyncio


async def test_ensure_session_row_is_idempotent(session: AsyncSession):
    first = await ensure_session_row(session)
    again = await ensure_session_row(session)
    assert first.id == again.id == SESSION_ROW_ID
    assert first.active is False
    assert first.session_no == 0
    assert await is_locked(session) is False


async def test_ensure_session_row_fails_loudly_when_row_vanishes(session: AsyncSession, monkeypatch):
    async def _always_missing(*args, **kwargs):
        return None

    monkeypatch.setattr(session, "get", _always_missing)
    with pytest.raises(RuntimeError):
        await ensure_session_row(session)
