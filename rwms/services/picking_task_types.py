# rwms/services/picking_task_types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from rwms.models.enums import PickingTaskStatus
from rwms.services.errors import StateConflictError

# 拣货任务状态机：open → in_progress → done；open / in_progress → canceled
TRANSITIONS: Dict[PickingTaskStatus, FrozenSet[PickingTaskStatus]] = {
    PickingTaskStatus.OPEN: frozenset({PickingTaskStatus.IN_PROGRESS, PickingTaskStatus.CANCELED}),
    PickingTaskStatus.IN_PROGRESS: frozenset({PickingTaskStatus.DONE, PickingTaskStatus.CANCELED}),
    PickingTaskStatus.DONE: frozenset(),
    PickingTaskStatus.CANCELED: frozenset(),
}


def transition(
    current: PickingTaskStatus | str,
    target: PickingTaskStatus | str,
    *,
    task_id: Optional[int] = None,
) -> PickingTaskStatus:
    cur = PickingTaskStatus(current)
    nxt = PickingTaskStatus(target)
    if nxt not in TRANSITIONS[cur]:
        raise StateConflictError(
            f"PickingTask {task_id} cannot go from {cur.value} to {nxt.value}",
            code="INVALID_TASK_STATE",
            context={"task_id": task_id, "status": cur.value, "target": nxt.value},
        )
    return nxt


@dataclass
class SourceCellProgress:
    """
    单个来源格的进度：该格在建单快照里的 unit 全部扫完即 complete。
    """

    cell_id: int
    cell_code: str
    expected: int
    scanned: int

    @property
    def complete(self) -> bool:
        return self.scanned >= self.expected


@dataclass
class TaskProgress:
    task_id: int
    status: str
    total: int
    scanned: int
    remaining: int
    active_source_cell_id: Optional[int]
    cells: List[SourceCellProgress] = field(default_factory=list)


@dataclass
class ScanResult:
    task_id: int
    unit_id: int
    barcode: str
    source_cell_id: int
    progress: TaskProgress


@dataclass
class FinalizeFailure:
    unit_id: int
    barcode: str
    code: str
    message: str


@dataclass
class FinalizeResult:
    task_id: int
    moved_count: int
    moved_unit_ids: List[int]
    failures: List[FinalizeFailure]
    remaining_unit_ids: List[int]
    follow_up_task_id: Optional[int] = None
