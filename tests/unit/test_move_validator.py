import pytest

from rwms.models.enums import CellType
from rwms.services.move_validator import ALLOWED_MOVES, is_allowed_pair, validate_move

CORE = ["bin", "storage", "shipping", "picking", "receiving"]

# 5×5 核心矩阵里允许的组合；其余一律拒绝
CORE_ALLOWED = {
    ("bin", "storage"),
    ("bin", "shipping"),
    ("storage", "storage"),
    ("storage", "shipping"),
    ("shipping", "storage"),
    ("shipping", "shipping"),
}


def _decide(from_type: str, to_type: str):
    # unit 就在来源格里：只看类型矩阵
    return validate_move(
        from_type,
        to_type,
        unit_cell_id=10,
        unit_cell_type=from_type,
        from_cell_id=10,
    )


@pytest.mark.parametrize("from_type", CORE)
@pytest.mark.parametrize("to_type", CORE)
def test_core_matrix(from_type, to_type):
    d = _decide(from_type, to_type)
    if (from_type, to_type) in CORE_ALLOWED:
        assert d.allowed
        assert d.code is None
    else:
        assert not d.allowed
        assert d.code == "ILLEGAL_TRANSITION"


@pytest.mark.parametrize(
    "pair",
    [
        ("bin", "rejected"),
        ("storage", "rejected"),
        ("shipping", "rejected"),
        ("rejected", "rejected"),
        ("rejected", "storage"),
        ("rejected", "shipping"),
        ("bin", "surplus"),
        ("rejected", "surplus"),
        ("surplus", "surplus"),
        ("surplus", "storage"),
        ("surplus", "shipping"),
    ],
)
def test_side_channel_allowed(pair):
    assert _decide(*pair).allowed


@pytest.mark.parametrize(
    "pair",
    [
        ("rejected", "bin"),
        ("surplus", "bin"),
        ("rejected", "picking"),
        ("surplus", "picking"),
        ("picking", "rejected"),
        ("receiving", "surplus"),
    ],
)
def test_side_channel_denied(pair):
    d = _decide(*pair)
    assert not d.allowed
    assert d.code == "ILLEGAL_TRANSITION"


def test_picking_and_receiving_never_in_whitelist():
    for f, t in ALLOWED_MOVES:
        assert CellType.PICKING not in (f, t)
        assert CellType.RECEIVING not in (f, t)


def test_bin_source_unit_in_other_bin_is_wrong_instance():
    d = validate_move(
        "bin",
        "storage",
        unit_cell_id=2,
        unit_cell_type="bin",
        from_cell_id=1,
    )
    assert not d.allowed
    assert d.code == "WRONG_SOURCE_INSTANCE"


@pytest.mark.parametrize("elsewhere", ["storage", "shipping", "picking", None])
def test_bin_source_unit_outside_bins_is_elsewhere(elsewhere):
    d = validate_move(
        "bin",
        "storage",
        unit_cell_id=None if elsewhere is None else 7,
        unit_cell_type=elsewhere,
        from_cell_id=1,
    )
    assert not d.allowed
    assert d.code == "UNIT_ELSEWHERE"


def test_instance_check_runs_before_matrix():
    # bin → picking 本身就非法，但 unit 不在该 bin 时先报实例错误
    d = validate_move("bin", "picking", unit_cell_id=2, unit_cell_type="bin", from_cell_id=1)
    assert d.code == "WRONG_SOURCE_INSTANCE"


def test_is_allowed_pair_accepts_strings_and_enums():
    assert is_allowed_pair("bin", CellType.STORAGE)
    assert not is_allowed_pair(CellType.STORAGE, "bin")
