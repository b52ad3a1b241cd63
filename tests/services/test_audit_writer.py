# tests/services/test_audit_writer.py
from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.core.config import get_settings
from rwms.models.audit_event import AuditEvent
from rwms.services.audit_writer import AuditEventWriter


@pytest.mark.asyncio
async def test_audit_event_writer_inserts_row(session: AsyncSession):
    """
    验证 AuditEventWriter.write 能正确写入 audit_events 表，
    且 meta.flow / meta.event 与 category / ref 对齐。
    """
    await AuditEventWriter.write(
        session,
        flow="PICKING_TASK",
        event="UNIT_TEST_EVENT",
        ref="UNIT-REF-123",
        actor="tester",
        meta={"foo": "bar"},
    )
    await session.commit()

    row = (
        await session.execute(select(AuditEvent).where(AuditEvent.ref == "UNIT-REF-123"))
    ).scalars().one()

    assert row.category == "PICKING_TASK"
    assert row.actor == "tester"
    assert row.meta == {"foo": "bar", "flow": "PICKING_TASK", "event": "UNIT_TEST_EVENT"}
    assert row.created_at is not None


@pytest.mark.asyncio
async def test_audit_event_meta_does_not_override_explicit_keys(session: AsyncSession):
    await AuditEventWriter.write(
        session,
        flow="INVENTORY",
        event="STARTED",
        ref="7",
        meta={"event": "custom"},
    )
    row = (await session.execute(select(AuditEvent).where(AuditEvent.ref == "7"))).scalars().one()
    assert row.meta["event"] == "custom"
    assert row.meta["flow"] == "INVENTORY"


@pytest.mark.asyncio
async def test_audit_disabled_writes_nothing(session: AsyncSession, monkeypatch):
    monkeypatch.setattr(get_settings(), "AUDIT_ENABLED", False)
    await AuditEventWriter.write(session, flow="CELL", event="CREATED", ref="X")
    rows = (await session.execute(select(AuditEvent))).scalars().all()
    assert rows == []
