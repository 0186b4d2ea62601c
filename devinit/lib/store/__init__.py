"""Database connection management and utilities."""

from devinit.lib.store.connection import (
    Row,
    _reset_for_testing,
    close_all,
    ensure,
    from_row,
    schema_version,
    transaction,
)
from devinit.lib.store.sqlite import connect

__all__ = [
    "ensure",
    "transaction",
    "from_row",
    "Row",
    "schema_version",
    "_reset_for_testing",
    "close_all",
    "connect",
]
