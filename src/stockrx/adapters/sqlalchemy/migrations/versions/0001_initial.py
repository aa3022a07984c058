"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-03-02 09:14:51.208113

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from stockrx.adapters.sqlalchemy.mappings import UTCDateTime

revision: str = "0001_initial"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

INVENTORY_STATUS = sa.Enum(
    "ACTIVE", "ARCHIVED", "OUT_OF_STOCK", "EXPIRING_SOON",
    name="inventorystatus",
    native_enum=False,
)
BATCH_STATUS = sa.Enum(
    "ACTIVE", "EXPIRING_SOON", "EXPIRED", "CONSUMED",
    name="batchstatus",
    native_enum=False,
)
LOG_OPERATION = sa.Enum(
    "ADD", "REMOVE", "ADJUST", "SHIP", "RECEIVE", "BATCH_EXPIRY_UPDATE",
    name="logoperation",
    native_enum=False,
)
TRANSFER_STATUS = sa.Enum(
    "PENDING", "APPROVED", "REJECTED", "IN_TRANSIT", "COMPLETED", "CANCELLED",
    name="transferstatus",
    native_enum=False,
)


def _counter(name: str) -> sa.Column[int]:
    return sa.Column(name, sa.Integer(), nullable=True, server_default="0")


def _inventory_fk(table: str) -> sa.Column[int]:
    return sa.Column(
        "inventory_id",
        sa.Integer(),
        sa.ForeignKey(
            "inventory.id",
            name=f"fk_{table}_inventory_id_inventory",
            ondelete="CASCADE",
        ),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "inventory",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", INVENTORY_STATUS, nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        _counter("batches_count"),
        _counter("inventory_logs_count"),
        _counter("shipments_count"),
        _counter("receipts_count"),
        sa.PrimaryKeyConstraint("id", name="pk_inventory"),
    )
    op.create_index("ix_inventory_category", "inventory", ["category"])

    op.create_table(
        "batch",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _inventory_fk("batch"),
        sa.Column("lot_code", sa.String(length=64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("expires_on", sa.Date(), nullable=True),
        sa.Column("status", BATCH_STATUS, nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_batch"),
        sa.UniqueConstraint("inventory_id", "lot_code", name="uq_batch_inventory_id"),
    )
    op.create_index("ix_batch_inventory_id", "batch", ["inventory_id"])
    op.create_index("ix_batch_expires_on", "batch", ["expires_on"])

    op.create_table(
        "inventory_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _inventory_fk("inventory_log"),
        sa.Column("operation_type", LOG_OPERATION, nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("previous_quantity", sa.Integer(), nullable=False),
        sa.Column("current_quantity", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_inventory_log"),
    )
    op.create_index("ix_inventory_log_inventory_id", "inventory_log", ["inventory_id"])

    op.create_table(
        "shipment",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _inventory_fk("shipment"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("destination", sa.String(length=255), nullable=False),
        sa.Column("shipped_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_shipment"),
    )
    op.create_index("ix_shipment_inventory_id", "shipment", ["inventory_id"])

    op.create_table(
        "receipt",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _inventory_fk("receipt"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(length=255), nullable=False),
        sa.Column("received_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_receipt"),
    )
    op.create_index("ix_receipt_inventory_id", "receipt", ["inventory_id"])

    op.create_table(
        "store",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        _counter("store_inventories_count"),
        _counter("pending_outgoing_transfers_count"),
        _counter("pending_incoming_transfers_count"),
        _counter("low_stock_items_count"),
        sa.PrimaryKeyConstraint("id", name="pk_store"),
        sa.UniqueConstraint("code", name="uq_store_code"),
    )

    op.create_table(
        "store_inventory",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "store_id",
            sa.Integer(),
            sa.ForeignKey("store.id", name="fk_store_inventory_store_id_store", ondelete="CASCADE"),
            nullable=False,
        ),
        _inventory_fk("store_inventory"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("safety_stock_level", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_store_inventory"),
        sa.UniqueConstraint("store_id", "inventory_id", name="uq_store_inventory_store_id"),
    )
    op.create_index("ix_store_inventory_store_id", "store_inventory", ["store_id"])
    op.create_index("ix_store_inventory_inventory_id", "store_inventory", ["inventory_id"])

    op.create_table(
        "inter_store_transfer",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "source_store_id",
            sa.Integer(),
            sa.ForeignKey("store.id", name="fk_inter_store_transfer_source_store_id_store"),
            nullable=False,
        ),
        sa.Column(
            "destination_store_id",
            sa.Integer(),
            sa.ForeignKey("store.id", name="fk_inter_store_transfer_destination_store_id_store"),
            nullable=False,
        ),
        sa.Column(
            "inventory_id",
            sa.Integer(),
            sa.ForeignKey("inventory.id", name="fk_inter_store_transfer_inventory_id_inventory"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", TRANSFER_STATUS, nullable=False),
        sa.Column("requested_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_inter_store_transfer"),
    )
    op.create_index(
        "ix_inter_store_transfer_source_store_id", "inter_store_transfer", ["source_store_id"]
    )
    op.create_index(
        "ix_inter_store_transfer_destination_store_id",
        "inter_store_transfer",
        ["destination_store_id"],
    )
    op.create_index(
        "ix_inter_store_transfer_inventory_id", "inter_store_transfer", ["inventory_id"]
    )

    op.create_table(
        "data_patch_lock",
        sa.Column("patch_name", sa.String(length=128), nullable=False),
        sa.Column("owner", sa.String(length=255), nullable=False),
        sa.Column("acquired_at", UTCDateTime(), nullable=False),
        sa.Column("expires_at", UTCDateTime(), nullable=True),
        sa.PrimaryKeyConstraint("patch_name", name="pk_data_patch_lock"),
    )


def downgrade() -> None:
    op.drop_table("data_patch_lock")
    op.drop_table("inter_store_transfer")
    op.drop_table("store_inventory")
    op.drop_table("store")
    op.drop_table("receipt")
    op.drop_table("shipment")
    op.drop_table("inventory_log")
    op.drop_table("batch")
    op.drop_table("inventory")
