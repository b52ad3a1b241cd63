# rwms/services/audit_writer.py
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rwms.core.config import get_settings
from rwms.models.audit_event import AuditEvent

logger = logging.getLogger("rwms.audit")

UTC = timezone.utc


class AuditEventWriter:
    """
    统一审计写入器：

    - 唯一职责：往 audit_events 表写一行。
    - 语义约定：
        * category = flow（PICKING_TASK / INVENTORY / LOGISTICS / CELL）
        * ref      = 业务引用（任务 id / 盘点批次号 / 发运单号 / 单元格编码）
        * meta     = json，至少包含 flow / event
        * actor    = 操作人（由身份层传入）
    - 写在保存点里：审计失败只回滚保存点，不影响主流程。
    """

    @staticmethod
    async def write(
        session: AsyncSession,
        *,
        flow: str,
        event: str,
        ref: str,
        actor: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not get_settings().AUDIT_ENABLED:
            return

        payload: Dict[str, Any] = dict(meta or {})
        payload.setdefault("flow", flow)
        payload.setdefault("event", event)

        try:
            async with session.begin_nested():
                session.add(
                    AuditEvent(
                        category=flow,
                        ref=str(ref),
                        meta=payload,
                        actor=actor,
                        created_at=datetime.now(UTC),
                    )
                )
        except SQLAlchemyError as e:
            logger.warning("audit_events insert failed: %s", e)
            logger.info(
                "[audit-fallback] %s | %s | %s",
                flow,
                ref,
                json.dumps(payload, ensure_ascii=False, default=str),
            )
