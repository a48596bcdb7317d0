"""
Table store protocol and base classes.

The store is the storage collaborator: it persists schemas (embedding
definitions travel in the schema metadata), commits batches, and answers
vector searches. TableVec only needs the interface below.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

import pyarrow as pa

from tablevec.core.exceptions import TableNotFoundError


@runtime_checkable
class TableStore(Protocol):
    """Protocol defining the interface for table storage backends."""

    def connect(self, uri: str, **kwargs) -> None:
        """Establish connection to the storage backend.

        Args:
            uri: Connection URI (e.g., "memory://")
            **kwargs: Backend-specific connection parameters
        """
        ...

    def disconnect(self) -> None:
        """Close connection to the storage backend."""
        ...

    def create(self, name: str, schema: pa.Schema, overwrite: bool = False) -> None:
        """Create (or with `overwrite`, replace) an empty table.

        Raises:
            TableExistsError: If the table exists and overwrite is False
        """
        ...

    def exists(self, name: str) -> bool:
        """Check whether a table exists."""
        ...

    def get_schema(self, name: str) -> pa.Schema:
        """Persisted schema of a table, metadata included.

        Raises:
            TableNotFoundError: If the table does not exist
        """
        ...

    def append(self, name: str, batches: Sequence[pa.RecordBatch]) -> int:
        """Commit batches as one write.

        Either every batch is appended or none is.

        Returns:
            Number of rows appended
        """
        ...

    def to_arrow(self, name: str) -> pa.Table:
        """Read the whole table."""
        ...

    def count_rows(self, name: str) -> int:
        """Number of committed rows."""
        ...

    def drop(self, name: str) -> None:
        """Delete a table and its schema."""
        ...

    def list_tables(self) -> List[str]:
        """Names of existing tables."""
        ...

    def vector_search(
        self,
        name: str,
        column: str,
        vector: Sequence[float],
        k: int = 10
    ) -> List[Dict[str, Any]]:
        """Nearest rows to `vector` in `column`.

        Returns:
            Row dicts, closest first, each with a `_distance` key
        """
        ...


class BaseTableStore:
    """Base class with common functionality for table stores."""

    def __init__(self):
        self._connected = False

    def validate_connection(self) -> None:
        """Check if store is connected.

        Raises:
            RuntimeError: If not connected
        """
        if not self._connected:
            raise RuntimeError("Table store not connected. Call connect() first.")

    def require_table(self, name: str) -> None:
        """Raise TableNotFoundError unless the table exists."""
        if not self.exists(name):
            raise TableNotFoundError(name)

    @staticmethod
    def conform_batch(batch: pa.RecordBatch, schema: pa.Schema) -> pa.RecordBatch:
        """Reorder and cast a batch to the table schema.

        Columns missing from the batch are filled with nulls; columns the
        schema does not know are rejected.

        Raises:
            ValueError: If the batch has unknown columns or cannot be cast
        """
        unknown = [n for n in batch.schema.names if schema.get_field_index(n) < 0]
        if unknown:
            raise ValueError(f"Columns not in table schema: {unknown}")

        arrays = []
        for table_field in schema:
            index = batch.schema.get_field_index(table_field.name)
            if index < 0:
                if not table_field.nullable:
                    raise ValueError(f"Missing value for non-nullable column '{table_field.name}'")
                arrays.append(pa.nulls(batch.num_rows, type=table_field.type))
                continue

            column = batch.column(index)
            if not column.type.equals(table_field.type):
                try:
                    column = column.cast(table_field.type)
                except (pa.ArrowInvalid, pa.ArrowNotImplementedError) as e:
                    raise ValueError(
                        f"Cannot cast column '{table_field.name}' from {column.type} "
                        f"to {table_field.type}: {e}"
                    ) from e
            if not table_field.nullable and column.null_count:
                raise ValueError(f"Null values in non-nullable column '{table_field.name}'")
            arrays.append(column)

        return pa.RecordBatch.from_arrays(arrays, schema=schema)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - disconnect on exit."""
        self.disconnect()
        return False


def create_table_store(backend: str = "memory", **kwargs) -> TableStore:
    """Factory function for creating table store instances.

    Args:
        backend: Backend type ("memory")
        **kwargs: Backend-specific connection parameters

    Returns:
        Connected TableStore implementation instance

    Example:
        store = create_table_store("memory")
    """
    from tablevec.store.memory import MemTableStore

    backends = {
        "memory": MemTableStore,
        "mem": MemTableStore,  # Alias
    }

    if backend not in backends:
        raise ValueError(
            f"Unknown backend: {backend}. "
            f"Choose from {list(backends.keys())}"
        )

    store = backends[backend]()
    store.connect(kwargs.pop("uri", "memory://"), **kwargs)
    return store
