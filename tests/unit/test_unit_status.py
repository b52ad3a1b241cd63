import pytest

from rwms.models.enums import CellType, UnitStatus
from rwms.services.unit_status import derive_status, is_consistent


@pytest.mark.parametrize(
    "cell_type, status",
    [
        (CellType.BIN, UnitStatus.BIN),
        (CellType.STORAGE, UnitStatus.STORED),
        (CellType.SHIPPING, UnitStatus.SHIPPING),
        (CellType.PICKING, UnitStatus.PICKING),
        (CellType.REJECTED, UnitStatus.REJECTED),
        (CellType.SURPLUS, UnitStatus.SURPLUS),
        (CellType.RECEIVING, UnitStatus.RECEIVING),
    ],
)
def test_status_follows_cell_type(cell_type, status):
    assert derive_status(cell_type) is status
    assert derive_status(cell_type.value) is status
    assert is_consistent(status, cell_type)


def test_no_cell_means_not_located():
    assert derive_status(None) is UnitStatus.NOT_LOCATED
    assert is_consistent(UnitStatus.NOT_LOCATED, None)


def test_out_only_consistent_without_cell():
    assert is_consistent(UnitStatus.OUT, None)
    assert not is_consistent(UnitStatus.OUT, CellType.PICKING)


def test_mismatch_is_inconsistent():
    assert not is_consistent(UnitStatus.BIN, CellType.STORAGE)
    assert not is_consistent("stored", None)
