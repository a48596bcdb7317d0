"""
In-memory table store implementation.

This module provides a lightweight in-memory table store for testing and
development, eliminating the need for a real database during unit tests.
"""

import logging
import threading
from typing import Any, Dict, List, Sequence

import numpy as np
import pyarrow as pa

from tablevec.core.exceptions import TableExistsError, TableNotFoundError
from tablevec.store.base import BaseTableStore

logger = logging.getLogger(__name__)


class MemTableStore(BaseTableStore):
    """In-memory implementation of the TableStore protocol.

    Tables are lists of record batches. Vector search is brute-force cosine
    distance.

    Note:
        This is NOT a storage engine: no persistence, no versioning.
        It exists for tests, examples and development.

    Example:
        store = MemTableStore()
        store.connect()
        store.create("docs", schema)
        store.append("docs", [batch])
    """

    def __init__(self):
        """Initialize in-memory store."""
        super().__init__()
        self._schemas: Dict[str, pa.Schema] = {}
        self._batches: Dict[str, List[pa.RecordBatch]] = {}
        self._lock = threading.Lock()

    def connect(self, uri: str = "memory://", **kwargs) -> None:
        """Establish connection (no-op for in-memory store)."""
        self._connected = True

    def disconnect(self) -> None:
        """Close connection (no-op for in-memory store)."""
        self._connected = False

    def create(self, name: str, schema: pa.Schema, overwrite: bool = False) -> None:
        self.validate_connection()
        with self._lock:
            if name in self._schemas and not overwrite:
                raise TableExistsError(name)
            self._schemas[name] = schema
            self._batches[name] = []
        logger.info("Created table '%s' (%d columns)", name, len(schema))

    def exists(self, name: str) -> bool:
        self.validate_connection()
        with self._lock:
            return name in self._schemas

    def get_schema(self, name: str) -> pa.Schema:
        self.validate_connection()
        self.require_table(name)
        with self._lock:
            return self._schemas[name]

    def append(self, name: str, batches: Sequence[pa.RecordBatch]) -> int:
        """Conform every batch first, then commit them together."""
        schema = self.get_schema(name)
        conformed = [self.conform_batch(batch, schema) for batch in batches]
        rows = sum(batch.num_rows for batch in conformed)

        with self._lock:
            if name not in self._batches:
                raise TableNotFoundError(name)
            self._batches[name].extend(conformed)
        logger.debug("Appended %d row(s) to '%s'", rows, name)
        return rows

    def to_arrow(self, name: str) -> pa.Table:
        schema = self.get_schema(name)
        with self._lock:
            batches = list(self._batches[name])
        return pa.Table.from_batches(batches, schema=schema)

    def count_rows(self, name: str) -> int:
        self.get_schema(name)
        with self._lock:
            return sum(batch.num_rows for batch in self._batches[name])

    def drop(self, name: str) -> None:
        self.validate_connection()
        self.require_table(name)
        with self._lock:
            del self._schemas[name]
            del self._batches[name]
        logger.info("Dropped table '%s'", name)

    def list_tables(self) -> List[str]:
        self.validate_connection()
        with self._lock:
            return sorted(self._schemas)

    def vector_search(
        self,
        name: str,
        column: str,
        vector: Sequence[float],
        k: int = 10
    ) -> List[Dict[str, Any]]:
        """Perform vector similarity search using cosine distance.

        Rows with a null vector are skipped.

        Returns:
            Row dicts, closest first, each with a `_distance` key
            (1 - cosine similarity)
        """
        table = self.to_arrow(name)
        if table.schema.get_field_index(column) < 0:
            raise ValueError(f"Column '{column}' not found in table '{name}'")
        if table.num_rows == 0:
            return []

        vectors = table.column(column).combine_chunks()
        mask = vectors.is_valid()
        valid = np.flatnonzero(mask.to_numpy(zero_copy_only=False))
        if valid.size == 0:
            return []

        dim = vectors.type.list_size
        present = vectors.filter(mask)
        matrix = present.values.to_numpy(zero_copy_only=False).reshape(-1, dim)
        query = np.asarray(vector, dtype=np.float32).reshape(-1)
        if query.shape[0] != dim:
            raise ValueError(f"Query has dimension {query.shape[0]}, column '{column}' has {dim}")

        distances = 1.0 - self._cosine_similarity(matrix, query)
        order = np.argsort(distances, kind="stable")[:k]

        results = []
        for i in order:
            row = table.slice(int(valid[i]), 1).to_pylist()[0]
            row["_distance"] = float(distances[i])
            results.append(row)
        return results

    @staticmethod
    def _cosine_similarity(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
        """Cosine similarity of each matrix row with the query; zero vectors score 0."""
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        return np.divide(dots, norms, out=np.zeros_like(dots, dtype=np.float64), where=norms > 0)

    def __repr__(self) -> str:
        """String representation."""
        status = "connected" if self._connected else "disconnected"
        return f"MemTableStore(status={status}, tables={len(self._schemas)})"
