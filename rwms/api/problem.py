# rwms/api/problem.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, NoReturn, Optional, Sequence, TypedDict

from fastapi import HTTPException

from rwms.services.errors import DomainError


class ProblemDetail(TypedDict, total=False):
    type: str  # validation|state|resource
    path: str  # e.g. body.barcodes
    reason: str
    unit_id: int
    barcode: str
    cell_id: int
    status: str


@dataclass(frozen=True)
class Problem:
    error_code: str
    message: str
    http_status: int
    context: Optional[Dict[str, Any]] = None
    details: Optional[List[ProblemDetail]] = None
    trace_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
            "http_status": int(self.http_status),
        }
        if self.context:
            out["context"] = self.context
        if self.details:
            out["details"] = self.details
        if self.trace_id:
            out["trace_id"] = self.trace_id
        return out


def make_problem(
    *,
    status_code: int,
    error_code: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    details: Optional[Sequence[ProblemDetail]] = None,
    trace_id: Optional[str] = None,
) -> Dict[str, Any]:
    return Problem(
        error_code=str(error_code),
        message=str(message),
        http_status=int(status_code),
        context=context,
        details=list(details) if details else None,
        trace_id=trace_id,
    ).to_dict()


def _unit_details(e: DomainError) -> List[ProblemDetail]:
    """
    批量类错误按 unit 展开成行：
    - context.units   = [{unit_id, barcode, cell_id, status}]（不可拣等）
    - context.missing = [条码或 id]（未登记）
    """
    out: List[ProblemDetail] = []
    for u in e.context.get("units") or []:
        if not isinstance(u, dict):
            continue
        row: ProblemDetail = {"type": "state", "reason": e.code}
        for key in ("unit_id", "barcode", "cell_id", "status"):
            if u.get(key) is not None:
                row[key] = u[key]  # type: ignore[literal-required]
        out.append(row)
    for ref in e.context.get("missing") or []:
        out.append({"type": "resource", "barcode": str(ref), "reason": "not found"})
    return out


def problem_from_domain(e: DomainError) -> Dict[str, Any]:
    return make_problem(
        status_code=e.http_status,
        error_code=e.code,
        message=e.message,
        context=e.context or None,
        details=_unit_details(e),
    )


def raise_domain_problem(e: DomainError) -> NoReturn:
    """服务层领域错误 → Problem（状态码与 error_code 都取自异常本身）。"""
    raise HTTPException(status_code=int(e.http_status), detail=problem_from_domain(e)) from e
