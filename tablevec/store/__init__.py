"""
Table store implementations.

This package provides the storage backends that implement the TableStore
protocol.
"""

from tablevec.store.base import (
    TableStore,
    BaseTableStore,
    create_table_store
)
from tablevec.store.memory import MemTableStore

__all__ = [
    "TableStore",
    "BaseTableStore",
    "create_table_store",
    "MemTableStore",
]
