from typing import Optional

from sqlalchemy import Sequence, Table
from sqlalchemy.sql.elements import quoted_name

from .base import AbstractListener, logger


class TablePrefixListener(AbstractListener):
    """
    Prepends a fixed prefix to the physical name of every mapped table,
    primary-key sequence and many-to-many association table.

    Only ``Table.name`` changes. ``MetaData.tables`` keeps the declared key,
    so string foreign keys such as ``"users.id"`` still resolve.
    """

    events = ("instrument_class", "mapper_configured")

    def __init__(self, prefix: Optional[str] = None):
        self.prefix = prefix

    def instrument_class(self, mapper, class_):
        if self.prefix is None:
            return

        # single-table subclasses share their parent's table
        if mapper.single:
            return

        table = mapper.local_table
        if not isinstance(table, Table):
            return

        self.prefix_table(table)
        self.prefix_sequences(table)

    def mapper_configured(self, mapper, class_):
        if self.prefix is None:
            return

        for prop in mapper.relationships:
            if isinstance(prop.secondary, Table):
                self.prefix_table(prop.secondary)

    def prefix_exists(self, name: str) -> bool:
        return name.startswith(self.prefix or "")

    def prefix_table(self, table: Table) -> None:
        if self.prefix_exists(table.name):
            return

        old_name = table.name
        table.name = quoted_name(f"{self.prefix}{old_name}", getattr(old_name, "quote", None))
        table.fullname = f"{table.schema}.{table.name}" if table.schema else table.name
        table.__dict__.pop("description", None)
        logger.info("Prefixed table %s -> %s", old_name, table.name)

    def prefix_sequences(self, table: Table) -> None:
        for column in table.primary_key.columns:
            sequence = column.default
            if not isinstance(sequence, Sequence) or self.prefix_exists(sequence.name):
                continue

            old_name = sequence.name
            sequence.name = quoted_name(f"{self.prefix}{old_name}", getattr(old_name, "quote", None))
            logger.info("Prefixed sequence %s -> %s", old_name, sequence.name)
