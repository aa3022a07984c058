"""SQLAlchemy mapping metadata for the stockrx domain model."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from functools import cache
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    orm,
)
from sqlalchemy.orm import configure_mappers, relationship

from stockrx.domain.counters import CountedEntity
from stockrx.domain.model import (
    Batch,
    BatchStatus,
    InterStoreTransfer,
    Inventory,
    InventoryLog,
    InventoryStatus,
    LogOperation,
    Receipt,
    Shipment,
    Store,
    StoreInventory,
    TransferStatus,
)

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


Money = Numeric(12, 2, asdecimal=True)

mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _counter_column(name: str) -> Column[int]:
    return Column(name, Integer, nullable=True, default=0, server_default="0")


# Inventory aggregate ---------------------------------------------------------

inventory_table = Table(
    "inventory",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("price", Money, nullable=False, default=Decimal(0)),
    Column("quantity", Integer, nullable=False, default=0),
    Column("status", Enum(InventoryStatus, native_enum=False), nullable=False),
    Column("category", String(64), nullable=True, index=True),
    Column("updated_at", UTCDateTime(), nullable=False),
    _counter_column("batches_count"),
    _counter_column("inventory_logs_count"),
    _counter_column("shipments_count"),
    _counter_column("receipts_count"),
)

batch_table = Table(
    "batch",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "inventory_id",
        Integer,
        ForeignKey("inventory.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("lot_code", String(64), nullable=False),
    Column("quantity", Integer, nullable=False, default=0),
    Column("expires_on", Date, nullable=True, index=True),
    Column("status", Enum(BatchStatus, native_enum=False), nullable=False),
    UniqueConstraint("inventory_id", "lot_code"),
)

inventory_log_table = Table(
    "inventory_log",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "inventory_id",
        Integer,
        ForeignKey("inventory.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("operation_type", Enum(LogOperation, native_enum=False), nullable=False),
    Column("delta", Integer, nullable=False, default=0),
    Column("previous_quantity", Integer, nullable=False),
    Column("current_quantity", Integer, nullable=False),
    Column("note", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
)

shipment_table = Table(
    "shipment",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "inventory_id",
        Integer,
        ForeignKey("inventory.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("quantity", Integer, nullable=False),
    Column("destination", String(255), nullable=False),
    Column("shipped_at", UTCDateTime(), nullable=False),
)

receipt_table = Table(
    "receipt",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "inventory_id",
        Integer,
        ForeignKey("inventory.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("quantity", Integer, nullable=False),
    Column("source", String(255), nullable=False),
    Column("received_at", UTCDateTime(), nullable=False),
)

# Stores ----------------------------------------------------------------------

store_table = Table(
    "store",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("code", String(32), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    _counter_column("store_inventories_count"),
    _counter_column("pending_outgoing_transfers_count"),
    _counter_column("pending_incoming_transfers_count"),
    _counter_column("low_stock_items_count"),
)

store_inventory_table = Table(
    "store_inventory",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "store_id",
        Integer,
        ForeignKey("store.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "inventory_id",
        Integer,
        ForeignKey("inventory.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("quantity", Integer, nullable=False, default=0),
    Column("safety_stock_level", Integer, nullable=False, default=5),
    UniqueConstraint("store_id", "inventory_id"),
)

inter_store_transfer_table = Table(
    "inter_store_transfer",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("source_store_id", Integer, ForeignKey("store.id"), nullable=False, index=True),
    Column("destination_store_id", Integer, ForeignKey("store.id"), nullable=False, index=True),
    Column("inventory_id", Integer, ForeignKey("inventory.id"), nullable=False, index=True),
    Column("quantity", Integer, nullable=False),
    Column("status", Enum(TransferStatus, native_enum=False), nullable=False),
    Column("requested_at", UTCDateTime(), nullable=False),
)

# Maintenance -----------------------------------------------------------------

data_patch_lock_table = Table(
    "data_patch_lock",
    mapper_registry.metadata,
    Column("patch_name", String(128), primary_key=True),
    Column("owner", String(255), nullable=False),
    Column("acquired_at", UTCDateTime(), nullable=False),
    Column("expires_at", UTCDateTime(), nullable=True),
)


# Counter caches --------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CounterDefinition:
    """A cached column on ``parent`` and the child rows it is meant to count."""

    name: str
    child: Table
    foreign_key: Column[int]
    condition: ColumnElement[bool] | None = None


@dataclass(frozen=True, slots=True)
class CountedTable:
    mapped_class: type
    table: Table
    counters: tuple[CounterDefinition, ...]

    def definition(self, name: str) -> CounterDefinition | None:
        for counter in self.counters:
            if counter.name == name:
                return counter
        return None


COUNTER_DEFINITIONS: Final[dict[CountedEntity, CountedTable]] = {
    CountedEntity.INVENTORY: CountedTable(
        mapped_class=Inventory,
        table=inventory_table,
        counters=(
            CounterDefinition("batches_count", batch_table, batch_table.c.inventory_id),
            CounterDefinition(
                "inventory_logs_count", inventory_log_table, inventory_log_table.c.inventory_id
            ),
            CounterDefinition("shipments_count", shipment_table, shipment_table.c.inventory_id),
            CounterDefinition("receipts_count", receipt_table, receipt_table.c.inventory_id),
        ),
    ),
    CountedEntity.STORE: CountedTable(
        mapped_class=Store,
        table=store_table,
        counters=(
            CounterDefinition(
                "store_inventories_count",
                store_inventory_table,
                store_inventory_table.c.store_id,
            ),
            CounterDefinition(
                "pending_outgoing_transfers_count",
                inter_store_transfer_table,
                inter_store_transfer_table.c.source_store_id,
                inter_store_transfer_table.c.status == TransferStatus.PENDING,
            ),
            CounterDefinition(
                "pending_incoming_transfers_count",
                inter_store_transfer_table,
                inter_store_transfer_table.c.destination_store_id,
                inter_store_transfer_table.c.status == TransferStatus.PENDING,
            ),
            CounterDefinition(
                "low_stock_items_count",
                store_inventory_table,
                store_inventory_table.c.store_id,
                store_inventory_table.c.quantity <= store_inventory_table.c.safety_stock_level,
            ),
        ),
    ),
}


@cache
def start_mappers() -> orm.registry:
    """Map domain classes imperatively; safe to call repeatedly."""

    log.debug("Mapping domain classes onto %s tables", len(mapper_registry.metadata.tables))
    mapper_registry.map_imperatively(
        Inventory,
        inventory_table,
        properties={
            "_batches": relationship(
                Batch,
                cascade="all, delete-orphan",
                order_by=batch_table.c.id,
            ),
            "_logs": relationship(
                InventoryLog,
                cascade="all, delete-orphan",
                order_by=inventory_log_table.c.id,
            ),
            "_shipments": relationship(
                Shipment,
                cascade="all, delete-orphan",
                order_by=shipment_table.c.id,
            ),
            "_receipts": relationship(
                Receipt,
                cascade="all, delete-orphan",
                order_by=receipt_table.c.id,
            ),
        },
    )

    mapper_registry.map_imperatively(Batch, batch_table)
    mapper_registry.map_imperatively(InventoryLog, inventory_log_table)
    mapper_registry.map_imperatively(Shipment, shipment_table)
    mapper_registry.map_imperatively(Receipt, receipt_table)

    mapper_registry.map_imperatively(
        Store,
        store_table,
        properties={
            "_stock_items": relationship(
                StoreInventory,
                cascade="all, delete-orphan",
                order_by=store_inventory_table.c.id,
            ),
        },
    )

    mapper_registry.map_imperatively(
        StoreInventory,
        store_inventory_table,
        properties={
            "_inventory": relationship(Inventory),
        },
    )

    mapper_registry.map_imperatively(
        InterStoreTransfer,
        inter_store_transfer_table,
        properties={
            "_source": relationship(
                Store,
                foreign_keys=[inter_store_transfer_table.c.source_store_id],
            ),
            "_destination": relationship(
                Store,
                foreign_keys=[inter_store_transfer_table.c.destination_store_id],
            ),
            "_inventory": relationship(Inventory),
        },
    )

    configure_mappers()
    return mapper_registry

