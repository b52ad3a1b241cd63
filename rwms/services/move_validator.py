# rwms/services/move_validator.py
"""
通用移动的合法性判定（纯函数，不碰数据库）。

只覆盖“扫码移动”这一条路径；收货入格、拣货任务完成、出库 / 退回
各有更严格的专用规则，不走这里。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from rwms.models.enums import CellType

B = CellType.BIN
ST = CellType.STORAGE
SH = CellType.SHIPPING
RJ = CellType.REJECTED
SP = CellType.SURPLUS

# (from, to) 白名单；其余一律拒绝。
# picking / receiving 既不能作为通用移动的来源，也不能作为目标。
ALLOWED_MOVES: FrozenSet[Tuple[CellType, CellType]] = frozenset(
    {
        (B, ST),
        (B, SH),
        (ST, ST),
        (ST, SH),
        (SH, ST),
        (SH, SH),
        # rejected：暂缓决定
        (B, RJ),
        (ST, RJ),
        (SH, RJ),
        (RJ, RJ),
        (RJ, ST),
        (RJ, SH),
        # surplus：来源不明
        (B, SP),
        (ST, SP),
        (SH, SP),
        (RJ, SP),
        (SP, SP),
        (SP, ST),
        (SP, SH),
    }
)


@dataclass(frozen=True)
class MoveDecision:
    allowed: bool
    code: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "MoveDecision":
        return cls(True)

    @classmethod
    def deny(cls, code: str, reason: str) -> "MoveDecision":
        return cls(False, code, reason)


ALLOW = MoveDecision.allow()


def is_allowed_pair(from_type: CellType | str, to_type: CellType | str) -> bool:
    return (CellType(from_type), CellType(to_type)) in ALLOWED_MOVES


def validate_move(
    from_type: CellType | str,
    to_type: CellType | str,
    *,
    unit_cell_id: Optional[int],
    unit_cell_type: Optional[CellType | str],
    from_cell_id: int,
) -> MoveDecision:
    """
    判定一次 from → to 的移动：

    1) 来源为 bin 时，unit 当前 cell 必须恰好是这个 bin：
       - 在另一个 bin 里 → WRONG_SOURCE_INSTANCE
       - 已在 storage / shipping / picking 等其它格，或未上架 → UNIT_ELSEWHERE
    2) (from_type, to_type) 必须在白名单里，否则 ILLEGAL_TRANSITION
    """
    ft = CellType(from_type)
    tt = CellType(to_type)

    if ft is CellType.BIN and unit_cell_id != from_cell_id:
        if unit_cell_type is not None and CellType(unit_cell_type) is CellType.BIN:
            return MoveDecision.deny(
                "WRONG_SOURCE_INSTANCE",
                f"Unit is logged in another bin (cell_id={unit_cell_id}), not in bin cell_id={from_cell_id}",
            )
        return MoveDecision.deny(
            "UNIT_ELSEWHERE",
            f"Unit is already recorded elsewhere (cell_id={unit_cell_id}, type={unit_cell_type})",
        )

    if (ft, tt) not in ALLOWED_MOVES:
        return MoveDecision.deny(
            "ILLEGAL_TRANSITION",
            f"Move from {ft.value} to {tt.value} is not allowed",
        )

    return ALLOW
