"""initial_schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:12:31.418207

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enums are stored as VARCHAR (non-native), see fulfillment.models.types.str_enum_type
ENUM_COLUMN = sa.String(length=32)
JSON_COLUMN = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _fulfillable_columns() -> list[sa.Column]:
    return [
        sa.Column("destination", sa.String(length=64), nullable=False),
        sa.Column("status", ENUM_COLUMN, nullable=False),
        sa.Column("document_number", sa.String(length=64), nullable=True),
        sa.Column("document_sequence", sa.Integer(), nullable=True),
        sa.Column("document_prefix", sa.String(length=16), nullable=True),
        sa.Column("fulfilled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    ]


def upgrade() -> None:
    # Document numbering
    op.create_table(
        "sequence_counters",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_type", ENUM_COLUMN, nullable=False),
        sa.Column("scope", sa.String(length=64), nullable=False),
        sa.Column("number_token", sa.String(length=16), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_type", "scope", name="uq_sequence_counter_type_scope"),
        sa.UniqueConstraint("document_type", "number_token", name="uq_sequence_counter_type_token"),
        sa.CheckConstraint("value >= 0", name="ck_sequence_counter_value_non_negative"),
    )

    op.create_table(
        "sequence_audit_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("action", ENUM_COLUMN, nullable=False),
        sa.Column("document_type", ENUM_COLUMN, nullable=False),
        sa.Column("scope", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=False),
        sa.Column("actor_role", sa.String(length=32), nullable=False),
        sa.Column("record_id", sa.String(length=26), nullable=True),
        sa.Column("previous_value", sa.String(length=64), nullable=True),
        sa.Column("new_value", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # Stock ledger
    op.create_table(
        "locations",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("is_central", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "stock_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("location", sa.String(length=64), nullable=False),
        sa.Column("variant_id", sa.String(length=64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reorder_threshold", sa.Integer(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("product_code", sa.String(length=64), nullable=True),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("attributes", JSON_COLUMN, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("location", "variant_id", name="uq_stock_line_location_variant"),
    )
    op.create_index("ix_stock_lines_location", "stock_lines", ["location"])
    op.create_index("ix_stock_lines_variant_id", "stock_lines", ["variant_id"])

    # Fulfillable records (ULID as UUID)
    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_number", sa.String(length=32), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        *_fulfillable_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_order_number", "orders", ["order_number"], unique=True)
    op.create_index("ix_orders_destination", "orders", ["destination"])
    op.create_index("ix_orders_document_number", "orders", ["document_number"])

    op.create_table(
        "material_requisitions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("requisition_number", sa.String(length=32), nullable=False),
        sa.Column("requested_by", sa.String(length=64), nullable=True),
        *_fulfillable_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_material_requisitions_requisition_number",
        "material_requisitions",
        ["requisition_number"],
        unique=True,
    )
    op.create_index("ix_material_requisitions_destination", "material_requisitions", ["destination"])
    op.create_index("ix_material_requisitions_document_number", "material_requisitions", ["document_number"])

    # Fulfillment audit
    op.create_table(
        "fulfillment_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("record_id", sa.String(length=26), nullable=False),
        sa.Column("document_type", ENUM_COLUMN, nullable=False),
        sa.Column("scope", sa.String(length=64), nullable=False),
        sa.Column("target_status", ENUM_COLUMN, nullable=False),
        sa.Column("outcome", ENUM_COLUMN, nullable=False),
        sa.Column("document_number", sa.String(length=64), nullable=True),
        sa.Column("lines", JSON_COLUMN, nullable=False),
        sa.Column("events", JSON_COLUMN, nullable=False),
        sa.Column("error_type", sa.String(length=64), nullable=True),
        sa.Column("error", sa.String(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_fulfillment_records_record_id", "fulfillment_records", ["record_id"])


def downgrade() -> None:
    op.drop_index("ix_fulfillment_records_record_id", table_name="fulfillment_records")
    op.drop_table("fulfillment_records")
    op.drop_index("ix_material_requisitions_document_number", table_name="material_requisitions")
    op.drop_index("ix_material_requisitions_destination", table_name="material_requisitions")
    op.drop_index("ix_material_requisitions_requisition_number", table_name="material_requisitions")
    op.drop_table("material_requisitions")
    op.drop_index("ix_orders_document_number", table_name="orders")
    op.drop_index("ix_orders_destination", table_name="orders")
    op.drop_index("ix_orders_order_number", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_stock_lines_variant_id", table_name="stock_lines")
    op.drop_index("ix_stock_lines_location", table_name="stock_lines")
    op.drop_table("stock_lines")
    op.drop_table("locations")
    op.drop_table("sequence_audit_log")
    op.drop_table("sequence_counters")
