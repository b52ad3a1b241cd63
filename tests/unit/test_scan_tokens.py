import pytest

from rwms.services.errors import ValidationError
from rwms.services.scan_tokens import normalize_barcode, normalize_barcodes, normalize_cell_code


def test_cell_code_upper_and_prefix():
    assert normalize_cell_code("  b-01 ") == "B-01"
    assert normalize_cell_code("CELL:s1") == "S1"
    assert normalize_cell_code("cell: sh.2") == "SH.2"


@pytest.mark.parametrize("raw", [None, "", "   ", "CELL:", "A B", "B#1"])
def test_cell_code_rejects_garbage(raw):
    with pytest.raises(ValidationError) as ei:
        normalize_cell_code(raw)
    assert ei.value.code == "INVALID_CELL_CODE"


def test_barcode_keeps_digits_only():
    assert normalize_barcode(" 0012-345 ") == "0012345"
    assert normalize_barcode("RET*7781*") == "7781"


@pytest.mark.parametrize("raw", [None, "", "ABC", "--"])
def test_barcode_rejects_empty_after_cleanup(raw):
    with pytest.raises(ValidationError) as ei:
        normalize_barcode(raw)
    assert ei.value.code == "INVALID_BARCODE"


def test_barcodes_dedupe_keeps_first_order():
    assert normalize_barcodes(["3", "1", " 3 ", "2", "1-"]) == ["3", "1", "2"]
