import pytest

from rwms.models.enums import PickingTaskStatus as S
from rwms.services.errors import StateConflictError
from rwms.services.picking_task_types import SourceCellProgress, transition


@pytest.mark.parametrize(
    "cur, nxt",
    [
        (S.OPEN, S.IN_PROGRESS),
        (S.OPEN, S.CANCELED),
        (S.IN_PROGRESS, S.DONE),
        (S.IN_PROGRESS, S.CANCELED),
    ],
)
def test_allowed_transitions(cur, nxt):
    assert transition(cur, nxt, task_id=1) is nxt


@pytest.mark.parametrize(
    "cur, nxt",
    [
        (S.OPEN, S.DONE),
        (S.IN_PROGRESS, S.OPEN),
        (S.DONE, S.CANCELED),
        (S.DONE, S.IN_PROGRESS),
        (S.CANCELED, S.OPEN),
        (S.CANCELED, S.DONE),
    ],
)
def test_denied_transitions(cur, nxt):
    with pytest.raises(StateConflictError) as ei:
        transition(cur.value, nxt.value, task_id=9)
    assert ei.value.code == "INVALID_TASK_STATE"
    assert ei.value.context["task_id"] == 9


def test_source_cell_complete_flag():
    assert not SourceCellProgress(cell_id=1, cell_code="S1", expected=3, scanned=2).complete
    assert SourceCellProgress(cell_id=1, cell_code="S1", expected=3, scanned=3).complete
