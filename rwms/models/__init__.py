# rwms/models/__init__.py
"""
统一导出 ORM 模型。
"""

from importlib import import_module


def _export(module_name: str, class_name: str) -> None:
    module = import_module(module_name)
    globals()[class_name] = getattr(module, class_name)


MODEL_SPECS = [
    # -------- 单元格 / unit --------
    ("rwms.models.cell", "Cell"),
    ("rwms.models.unit", "Unit"),
    ("rwms.models.unit_move", "UnitMove"),
    ("rwms.models.shipment", "Shipment"),
    # -------- 拣货任务 --------
    ("rwms.models.picking_task", "PickingTask"),
    ("rwms.models.picking_task_unit", "PickingTaskUnit"),
    # -------- 盘点 --------
    ("rwms.models.inventory_session", "InventorySession"),
    ("rwms.models.inventory_cell_task", "InventoryCellTask"),
    ("rwms.models.inventory_scan", "InventoryScan"),
    # -------- 审计 --------
    ("rwms.models.audit_event", "AuditEvent"),
]

for _mod, _cls in MODEL_SPECS:
    _export(_mod, _cls)

__all__ = [cls for _, cls in MODEL_SPECS]
