"""returns_flow_core

Revision ID: 0001_returns_flow_core
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_returns_flow_core"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    op.create_table(
        "cells",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("code", sa.Text(), nullable=False, unique=True),
        sa.Column("cell_type", sa.String(length=9), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("attributes", JSON, nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_cells_type", "cells", ["cell_type"])

    op.create_table(
        "units",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("barcode", sa.Text(), nullable=False, unique=True),
        sa.Column("status", sa.String(length=11), nullable=False),
        sa.Column("cell_id", ID, sa.ForeignKey("cells.id"), nullable=True),
        sa.Column("rejection_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("ticket", JSON, nullable=True),
        sa.Column("meta", JSON, nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    )
    op.create_index("ix_units_cell", "units", ["cell_id"])
    op.create_index("ix_units_status", "units", ["status"])

    # 移动台账：append-only
    op.create_table(
        "unit_moves",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("unit_id", ID, sa.ForeignKey("units.id"), nullable=False),
        sa.Column("from_cell_id", ID, sa.ForeignKey("cells.id"), nullable=True),
        sa.Column("to_cell_id", ID, sa.ForeignKey("cells.id"), nullable=True),
        sa.Column("moved_by", sa.Text(), nullable=False),
        sa.Column("source", sa.Text(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("attributes", JSON, nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_unit_moves_unit_time", "unit_moves", ["unit_id", "created_at"])
    op.create_index("ix_unit_moves_from_cell", "unit_moves", ["from_cell_id"])
    op.create_index("ix_unit_moves_to_cell", "unit_moves", ["to_cell_id"])

    op.create_table(
        "shipments",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("unit_id", ID, sa.ForeignKey("units.id"), nullable=False),
        sa.Column("courier_name", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=8), nullable=False),
        sa.Column("shipped_by", sa.Text(), nullable=False),
        sa.Column("shipped_at", TS, nullable=False),
        sa.Column("returned_by", sa.Text(), nullable=True),
        sa.Column("returned_at", TS, nullable=True),
        sa.Column("return_reason", sa.Text(), nullable=True),
        sa.Column("return_cell_id", ID, sa.ForeignKey("cells.id"), nullable=True),
    )
    op.create_index("ix_shipments_unit", "shipments", ["unit_id"])
    op.create_index("ix_shipments_status", "shipments", ["status"])

    op.create_table(
        "picking_tasks",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("status", sa.String(length=11), nullable=False),
        sa.Column("target_cell_id", ID, sa.ForeignKey("cells.id"), nullable=False),
        sa.Column("scenario", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Text(), nullable=False),
        sa.Column("claimed_by", sa.Text(), nullable=True),
        sa.Column("claimed_at", TS, nullable=True),
        sa.Column("active_source_cell_id", ID, sa.ForeignKey("cells.id"), nullable=True),
        sa.Column("completed_by", sa.Text(), nullable=True),
        sa.Column("completed_at", TS, nullable=True),
        sa.Column("canceled_by", sa.Text(), nullable=True),
        sa.Column("canceled_at", TS, nullable=True),
        sa.Column("parent_task_id", ID, sa.ForeignKey("picking_tasks.id"), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    )
    op.create_index("ix_picking_tasks_status", "picking_tasks", ["status"])
    op.create_index("ix_picking_tasks_target", "picking_tasks", ["target_cell_id"])
    op.create_index("ix_picking_tasks_claimed", "picking_tasks", ["claimed_by"])

    op.create_table(
        "picking_task_units",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("task_id", ID, sa.ForeignKey("picking_tasks.id"), nullable=False),
        sa.Column("unit_id", ID, sa.ForeignKey("units.id"), nullable=False),
        sa.Column("source_cell_id", ID, sa.ForeignKey("cells.id"), nullable=False),
        sa.Column("scanned_at", TS, nullable=True),
        sa.Column("scanned_by", sa.Text(), nullable=True),
        sa.Column("moved_at", TS, nullable=True),
        sa.UniqueConstraint("task_id", "unit_id", name="uq_picking_task_units_task_unit"),
    )
    op.create_index("ix_picking_task_units_unit", "picking_task_units", ["unit_id"])

    # 全局盘点锁：单行表，id 固定为 1
    op.create_table(
        "inventory_session",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("session_no", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("started_at", TS, nullable=True),
        sa.Column("started_by", sa.Text(), nullable=True),
        sa.Column("ended_at", TS, nullable=True),
        sa.Column("ended_by", sa.Text(), nullable=True),
        sa.Column("end_reason", sa.Text(), nullable=True),
    )
    op.execute("INSERT INTO inventory_session (id, active, session_no) VALUES (1, false, 0)")

    op.create_table(
        "inventory_cell_tasks",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("session_no", sa.Integer(), nullable=False),
        sa.Column("cell_id", ID, sa.ForeignKey("cells.id"), nullable=False),
        sa.Column("status", sa.String(length=7), nullable=False),
        sa.Column("expected_unit_ids", JSON, nullable=False),
        sa.Column("claimed_by", sa.Text(), nullable=True),
        sa.Column("claimed_at", TS, nullable=True),
        sa.Column("scanned_by", sa.Text(), nullable=True),
        sa.Column("scanned_at", TS, nullable=True),
        sa.Column("result", JSON, nullable=True),
        sa.UniqueConstraint("session_no", "cell_id", name="uq_inventory_cell_tasks_session_cell"),
    )
    op.create_index("ix_inventory_cell_tasks_status", "inventory_cell_tasks", ["session_no", "status"])

    op.create_table(
        "inventory_scans",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("cell_task_id", ID, sa.ForeignKey("inventory_cell_tasks.id"), nullable=False),
        sa.Column("barcode", sa.Text(), nullable=False),
        sa.Column("unit_id", ID, sa.ForeignKey("units.id"), nullable=True),
        sa.Column("scanned_by", sa.Text(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.UniqueConstraint("cell_task_id", "barcode", name="uq_inventory_scans_task_barcode"),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", ID, primary_key=True, autoincrement=True),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("ref", sa.Text(), nullable=False),
        sa.Column("meta", JSON, nullable=False),
        sa.Column("actor", sa.Text(), nullable=True),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_audit_events_category_ref", "audit_events", ["category", "ref"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_category_ref", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_table("inventory_scans")
    op.drop_index("ix_inventory_cell_tasks_status", table_name="inventory_cell_tasks")
    op.drop_table("inventory_cell_tasks")
    op.drop_table("inventory_session")
    op.drop_index("ix_picking_task_units_unit", table_name="picking_task_units")
    op.drop_table("picking_task_units")
    op.drop_index("ix_picking_tasks_claimed", table_name="picking_tasks")
    op.drop_index("ix_picking_tasks_target", table_name="picking_tasks")
    op.drop_index("ix_picking_tasks_status", table_name="picking_tasks")
    op.drop_table("picking_tasks")
    op.drop_index("ix_shipments_status", table_name="shipments")
    op.drop_index("ix_shipments_unit", table_name="shipments")
    op.drop_table("shipments")
    op.drop_index("ix_unit_moves_to_cell", table_name="unit_moves")
    op.drop_index("ix_unit_moves_from_cell", table_name="unit_moves")
    op.drop_index("ix_unit_moves_unit_time", table_name="unit_moves")
    op.drop_table("unit_moves")
    op.drop_index("ix_units_status", table_name="units")
    op.drop_index("ix_units_cell", table_name="units")
    op.drop_table("units")
    op.drop_index("ix_cells_type", table_name="cells")
    op.drop_table("cells")
