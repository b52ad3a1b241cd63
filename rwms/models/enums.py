# rwms/models/enums.py
from __future__ import annotations

from enum import StrEnum


class CellType(StrEnum):
    """
    单元格（cell）类型，创建后不可变：

    - BIN        快递员交回退货的收货格
    - STORAGE    审核通过、待退回商家的存放格
    - SHIPPING   待送检 / 诊断的存放格
    - PICKING    出仓前的集货格，只能由拣货任务完成后进入
    - REJECTED   暂缓决定的退货
    - SURPLUS    来源不明的多余件
    - RECEIVING  接收区（不参与通用移动）
    """

    BIN = "bin"
    STORAGE = "storage"
    SHIPPING = "shipping"
    PICKING = "picking"
    REJECTED = "rejected"
    SURPLUS = "surplus"
    RECEIVING = "receiving"


class UnitStatus(StrEnum):
    """
    unit 状态 = 所在 cell 类型的纯函数；OUT 为终态，只能通过出库动作到达。
    NOT_LOCATED：没有 cell（盘点缺失后被清空）。
    """

    BIN = "bin"
    STORED = "stored"
    SHIPPING = "shipping"
    PICKING = "picking"
    REJECTED = "rejected"
    SURPLUS = "surplus"
    RECEIVING = "receiving"
    NOT_LOCATED = "not_located"
    OUT = "out"


class PickingTaskStatus(StrEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELED = "canceled"


class InventoryTaskStatus(StrEnum):
    PENDING = "pending"
    SCANNED = "scanned"


class ShipmentStatus(StrEnum):
    OUT = "out"
    RETURNED = "returned"


class MoveSource(StrEnum):
    """
    unit_moves.source：记录这次移动由哪条业务路径产生。
    """

    MOVE = "move"
    RECEIVING = "receiving"
    SURPLUS = "surplus"
    PICKING_TASK = "picking_task"
    INVENTORY = "inventory"
    SHIP_OUT = "ship_out"
    RETURN_FROM_OUT = "return_from_out"


def enum_values(enum_cls) -> list[str]:
    """SAEnum(values_callable=...)：落库存 value 而不是 name。"""
    return [m.value for m in enum_cls]
