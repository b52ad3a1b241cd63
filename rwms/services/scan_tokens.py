# rwms/services/scan_tokens.py
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Union

from rwms.services.errors import ValidationError

# 单元格标签可能带 "CELL:" 前缀（打印标签格式）
CELL_PREFIX = "CELL:"
_NON_DIGIT = re.compile(r"\D")
_CELL_CODE_RE = re.compile(r"^[A-Z0-9][A-Z0-9_\-.]*$")

UnitRef = Union[int, str]


def normalize_cell_code(raw: Optional[str]) -> str:
    """
    单元格编码归一：去空白 → 大写 → 去掉 CELL: 前缀。
    空值或含非法字符 → ValidationError。
    """
    code = str(raw or "").strip().upper()
    if code.startswith(CELL_PREFIX):
        code = code[len(CELL_PREFIX) :].strip()
    if not code or not _CELL_CODE_RE.match(code):
        raise ValidationError(f"Invalid cell code: {raw!r}", code="INVALID_CELL_CODE")
    return code


def normalize_barcode(raw: Optional[str]) -> str:
    """unit 条码只保留数字；清洗后为空 → ValidationError。"""
    digits = _NON_DIGIT.sub("", str(raw or ""))
    if not digits:
        raise ValidationError(f"Invalid unit barcode: {raw!r}", code="INVALID_BARCODE")
    return digits


def normalize_barcodes(raws: Iterable[Optional[str]]) -> List[str]:
    """批量归一，保持首次出现顺序去重。"""
    out: List[str] = []
    seen: set[str] = set()
    for raw in raws:
        b = normalize_barcode(raw)
        if b in seen:
            continue
        seen.add(b)
        out.append(b)
    return out
