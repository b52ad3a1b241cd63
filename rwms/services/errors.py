# rwms/services/errors.py
"""
领域错误分类（服务层只抛这些，API 层统一翻译为 Problem 响应）：

- ValidationError      输入格式不合法（条码 / 编码 / 类型）          → 422
- NotFoundError        unit / cell / 任务不存在                      → 404
- StateConflictError   状态冲突（已被领取、unit 已在别处、目标不符…） → 409
- DuplicateScanError   同一作业内重复扫码                            → 409
- LockedError          盘点进行中，所有移动被冻结                    → 423

LockedError 不是可重试的瞬时错误：盘点结束之前任何移动都不会成功。
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DomainError(Exception):
    code = "DOMAIN_ERROR"
    http_status = 400

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        if code:
            self.code = code
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.context:
            out["context"] = self.context
        return out


class ValidationError(DomainError):
    code = "VALIDATION_ERROR"
    http_status = 422


class NotFoundError(DomainError):
    code = "NOT_FOUND"
    http_status = 404


class StateConflictError(DomainError):
    code = "STATE_CONFLICT"
    http_status = 409


class DuplicateScanError(DomainError):
    code = "DUPLICATE"
    http_status = 409


class LockedError(DomainError):
    code = "LOCKED"
    http_status = 423

    def __init__(self, message: str = "Inventory session is active; movements are locked", **kw):
        super().__init__(message, **kw)


__all__ = [
    "DomainError",
    "DuplicateScanError",
    "LockedError",
    "NotFoundError",
    "StateConflictError",
    "ValidationError",
]
