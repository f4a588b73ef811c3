"""Table definition and schema setup for the PostgreSQL data backend."""

from __future__ import annotations

import logging

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    LargeBinary,
    MetaData,
    String,
    Table,
    func,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateIndex, CreateTable

from retryspool.core.storage.data import SchemaError

logger = logging.getLogger(__name__)

MESSAGE_ID_MAX_LENGTH = 255


def build_data_table(table_name: str, metadata: MetaData | None = None) -> Table:
    """Describe the message data table.

    Args:
        table_name: Name of the table
        metadata: MetaData to attach the table to (a fresh one if None)

    Returns:
        Table with the payload columns and indexes on ``created`` and ``updated``
    """
    if metadata is None:
        metadata = MetaData()

    return Table(
        table_name,
        metadata,
        Column("message_id", String(MESSAGE_ID_MAX_LENGTH), primary_key=True),
        Column("data", LargeBinary, nullable=False),
        Column("size", BigInteger, nullable=False),
        Column("created", DateTime(timezone=True), nullable=False, server_default=func.now()),
        Column("updated", DateTime(timezone=True), nullable=False, server_default=func.now()),
        Index(f"idx_{table_name}_created", "created"),
        Index(f"idx_{table_name}_updated", "updated"),
    )


def ensure_schema(engine: Engine, table_name: str) -> Table:
    """Create the data table and its indexes if they are missing.

    Every statement is ``CREATE ... IF NOT EXISTS`` so running this against an
    existing table, or from several instances starting at once, leaves the
    schema unchanged instead of failing.

    Args:
        engine: Engine connected to the target database
        table_name: Name of the table

    Returns:
        The table definition

    Raises:
        SchemaError: If any DDL statement fails
    """
    table = build_data_table(table_name)

    try:
        with engine.begin() as conn:
            conn.execute(CreateTable(table, if_not_exists=True))
            for index in sorted(table.indexes, key=lambda ix: ix.name):
                conn.execute(CreateIndex(index, if_not_exists=True))
    except SQLAlchemyError as e:
        raise SchemaError(f"Failed to create table {table_name}: {e}") from e

    logger.info(f"Ensured data table: {table_name}")
    return table
