"""
Embedding-aware table.

A Table reads its embedding definitions from the persisted schema and runs
every write through the materialization pipeline and every text search
through the query embedder.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pyarrow as pa

from tablevec.core.schema import (
    EmbeddingDefinition,
    embedding_definitions_from_schema,
    is_vector_type,
    vector_dim,
)
from tablevec.embeddings.registry import EmbeddingRegistry
from tablevec.store.base import TableStore
from tablevec.table.materialize import MaterializationPipeline, PipelineConfig
from tablevec.table.query import QueryEmbedder

logger = logging.getLogger(__name__)

Data = Union[pa.Table, pa.RecordBatch, Sequence[pa.RecordBatch], Sequence[Dict[str, Any]]]


def to_batches(data: Data, schema: Optional[pa.Schema] = None) -> List[pa.RecordBatch]:
    """Convert supported input data to record batches.

    Args:
        data: Arrow table, record batch, list of record batches, or list of
            row dicts
        schema: Table schema used to type row dicts

    Returns:
        Record batches in input order

    Raises:
        ValueError: If row dicts name columns the schema does not have
        TypeError: If the data type is not supported
    """
    if isinstance(data, pa.RecordBatch):
        return [data]
    if isinstance(data, pa.Table):
        return data.to_batches()
    if not isinstance(data, (list, tuple)):
        raise TypeError(f"Unsupported data type: {type(data).__name__}")
    if not data:
        return []
    if all(isinstance(item, pa.RecordBatch) for item in data):
        return list(data)
    if not all(isinstance(item, dict) for item in data):
        raise TypeError("Lists must contain only record batches or only row dicts")

    if schema is None:
        return [pa.RecordBatch.from_pylist(list(data))]

    keys = list(dict.fromkeys(key for row in data for key in row))
    unknown = [key for key in keys if schema.get_field_index(key) < 0]
    if unknown:
        raise ValueError(f"Columns not in table schema: {unknown}")
    row_schema = pa.schema([schema.field(key) for key in keys])
    return [pa.RecordBatch.from_pylist(list(data), schema=row_schema)]


def is_query_vector(query: Any) -> bool:
    """True for raw numeric vectors, which skip query embedding."""
    if isinstance(query, np.ndarray):
        return np.issubdtype(query.dtype, np.number)
    if isinstance(query, (list, tuple)) and query:
        return all(isinstance(v, (int, float, np.number)) for v in query)
    return False


class Table:
    """A table whose vector columns are filled in automatically.

    Example:
        table = await db.open_table("docs")
        await table.add([{"id": 1, "text": "graph databases"}])
        hits = await table.search("graphs", k=5)
    """

    def __init__(
        self,
        name: str,
        store: TableStore,
        registry: EmbeddingRegistry,
        config: Optional[PipelineConfig] = None
    ):
        """Initialize table handle.

        Args:
            name: Table name
            store: Storage backend holding the table
            registry: Registry used to resolve embedding functions
            config: Optional pipeline configuration
        """
        self._name = name
        self._store = store
        self._registry = registry
        self._pipeline = MaterializationPipeline(registry, config)
        self._query_embedder = QueryEmbedder(registry, config)

    @property
    def name(self) -> str:
        return self._name

    @property
    def schema(self) -> pa.Schema:
        """Persisted schema, embedding metadata included."""
        return self._store.get_schema(self._name)

    @property
    def embedding_definitions(self) -> List[EmbeddingDefinition]:
        """Reconciled definitions, in declaration order."""
        return embedding_definitions_from_schema(self.schema)

    async def add(self, data: Data) -> int:
        """Materialize vector columns and append rows as one commit.

        Vector columns present in `data` are stored as given. If any batch
        fails to materialize, nothing is written.

        Args:
            data: Rows to append

        Returns:
            Number of rows appended
        """
        schema = self.schema
        batches = to_batches(data, schema)
        if not batches:
            return 0

        materialized = await self._pipeline.materialize_all(
            batches, embedding_definitions_from_schema(schema), schema
        )
        rows = self._store.append(self._name, materialized)
        logger.info("Added %d row(s) to '%s'", rows, self._name)
        return rows

    async def search(
        self,
        query: Any,
        vector_column: Optional[str] = None,
        k: int = 10
    ) -> List[Dict[str, Any]]:
        """Nearest-neighbour search.

        Args:
            query: Raw query value (embedded with the column's function) or
                a numeric vector (used as is)
            vector_column: Vector column to search; may be omitted when the
                table has exactly one
            k: Number of results

        Returns:
            Row dicts, closest first, with a `_distance` key
        """
        schema = self.schema
        column = self._resolve_vector_column(schema, vector_column)

        if is_query_vector(query):
            vector = np.asarray(query, dtype=np.float32)
        else:
            definition = self._definition_for(column)
            vector = await self._query_embedder.embed_query(
                query, definition, expected_dim=vector_dim(schema.field(column).type)
            )

        return self._store.vector_search(self._name, column, vector, k=k)

    async def count_rows(self) -> int:
        return self._store.count_rows(self._name)

    async def to_arrow(self) -> pa.Table:
        return self._store.to_arrow(self._name)

    def _definition_for(self, column: str) -> EmbeddingDefinition:
        for definition in self.embedding_definitions:
            if definition.dest_column == column:
                return definition
        raise ValueError(
            f"Column '{column}' has no embedding function; pass a query vector instead"
        )

    def _resolve_vector_column(self, schema: pa.Schema, vector_column: Optional[str]) -> str:
        if vector_column is not None:
            if schema.get_field_index(vector_column) < 0:
                raise ValueError(f"Column '{vector_column}' not found in table '{self._name}'")
            return vector_column

        definitions = embedding_definitions_from_schema(schema)
        if len(definitions) == 1:
            return definitions[0].dest_column

        candidates = [f.name for f in schema if is_vector_type(f.type)]
        if len(candidates) == 1:
            return candidates[0]
        raise ValueError(
            f"Table '{self._name}' has vector columns {candidates}; pass vector_column"
        )

    def __repr__(self) -> str:
        return f"Table(name='{self._name}')"
