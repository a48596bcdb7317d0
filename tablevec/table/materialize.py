"""
Materialization pipeline.

Computes missing vector columns for incoming record batches. Each embedding
function is invoked once per batch with all of the batch's source values;
the result is validated and appended as a fixed-size-list column.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import numpy as np
import pyarrow as pa

from tablevec.core.exceptions import (
    DimensionMismatchError,
    EmbeddingCountMismatchError,
    FunctionComputeFailedError,
    NotFoundError,
    SourceColumnHasNullsError,
    SourceColumnMissingError,
    UnknownEmbeddingFunctionError,
)
from tablevec.core.schema import EmbeddingDefinition
from tablevec.embeddings.base import EmbeddingFunction, to_float32_rows
from tablevec.embeddings.registry import EmbeddingRegistry

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Configuration for materialization and query embedding.

    Example:
        config = PipelineConfig(timeout_s=30.0)
    """

    # Upper bound for a single compute call; exceeding it cancels the call
    timeout_s: Optional[float] = None


async def call_embedding(
    embedding_name: str,
    method: Callable[[Any], Any],
    argument: Any,
    timeout_s: Optional[float] = None
) -> Any:
    """Invoke a compute method as a suspend point.

    Coroutine methods are awaited on the loop; plain methods run in a worker
    thread. Provider failures are wrapped in FunctionComputeFailedError;
    cancellation and timeouts propagate unchanged.
    """
    async def invoke():
        try:
            if inspect.iscoroutinefunction(method):
                result = await method(argument)
            else:
                result = await asyncio.to_thread(method, argument)
                if inspect.isawaitable(result):
                    result = await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise FunctionComputeFailedError(embedding_name, e) from e
        return result

    if timeout_s is None:
        return await invoke()
    return await asyncio.wait_for(invoke(), timeout=timeout_s)


async def gather_or_cancel(awaitables: Sequence[Awaitable]) -> List[Any]:
    """Run awaitables concurrently; on the first failure cancel the rest.

    Results come back in input order.
    """
    tasks = [asyncio.ensure_future(a) for a in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass
class _ColumnJob:
    definition: EmbeddingDefinition
    function: EmbeddingFunction
    values: List[Any]
    field: pa.Field


class MaterializationPipeline:
    """Fills in missing vector columns of record batches.

    Vector columns the caller already supplied are left untouched, so
    precomputed embeddings bypass the embedding function entirely.

    Example:
        pipeline = MaterializationPipeline(registry)
        batch = pa.RecordBatch.from_pylist([{"id": 1, "text": "a"}])
        augmented = await pipeline.materialize(batch, reconciled.definitions, reconciled.schema)
        augmented.schema.names  # ['id', 'text', 'text_embedding']
    """

    def __init__(self, registry: EmbeddingRegistry, config: Optional[PipelineConfig] = None):
        """Initialize pipeline.

        Args:
            registry: Registry used to resolve functions by name
            config: Optional pipeline configuration
        """
        self._registry = registry
        self._config = config or PipelineConfig()

    async def materialize(
        self,
        batch: pa.RecordBatch,
        definitions: Sequence[EmbeddingDefinition],
        schema: Optional[pa.Schema] = None
    ) -> pa.RecordBatch:
        """Compute every missing vector column of one batch.

        Args:
            batch: Incoming rows
            definitions: Reconciled definitions (destinations resolved)
            schema: Reconciled table schema; fixes the order and type of
                appended columns. Without it, definition order and each
                function's `dest_type` are used.

        Returns:
            New batch: original columns in original order, computed vector
            columns appended at the end. Row order is preserved.

        Raises:
            SourceColumnMissingError: Batch lacks a needed source column
            SourceColumnHasNullsError: Null source and no null support
            UnknownEmbeddingFunctionError: Function no longer registered
            FunctionComputeFailedError: Provider raised
            EmbeddingCountMismatchError: Wrong number of vectors returned
            DimensionMismatchError: A vector has the wrong dimension
        """
        jobs = self._plan(batch, definitions, schema)
        if not jobs:
            return batch

        columns = await gather_or_cancel([self._compute_column(job, batch.num_rows) for job in jobs])

        augmented = pa.RecordBatch.from_arrays(
            list(batch.columns) + columns,
            schema=pa.schema(
                list(batch.schema) + [job.field for job in jobs],
                metadata=batch.schema.metadata
            )
        )
        logger.debug(
            "Materialized %d row(s) into %s",
            batch.num_rows, [job.field.name for job in jobs]
        )
        return augmented

    async def materialize_all(
        self,
        batches: Sequence[pa.RecordBatch],
        definitions: Sequence[EmbeddingDefinition],
        schema: Optional[pa.Schema] = None
    ) -> List[pa.RecordBatch]:
        """Materialize several batches; either all succeed or the error is raised."""
        return await gather_or_cancel(
            [self.materialize(batch, definitions, schema) for batch in batches]
        )

    def _plan(
        self,
        batch: pa.RecordBatch,
        definitions: Sequence[EmbeddingDefinition],
        schema: Optional[pa.Schema]
    ) -> List[_ColumnJob]:
        """Validate sources and resolve functions before any computation starts."""
        present = set(batch.schema.names)
        pending = [d for d in definitions if d.dest_column not in present]
        if schema is not None:
            pending.sort(key=lambda d: self._schema_position(schema, d))

        jobs = []
        for definition in pending:
            if definition.source_column not in present:
                raise SourceColumnMissingError(definition.source_column, batch.schema.names)

            function = self._resolve(definition)
            column = batch.column(definition.source_column)
            if column.null_count and not function.supports_null_source:
                raise SourceColumnHasNullsError(definition.source_column, column.null_count)

            jobs.append(_ColumnJob(
                definition=definition,
                function=function,
                values=column.to_pylist(),
                field=self._dest_field(definition, function, column.type, schema),
            ))
        return jobs

    async def _compute_column(self, job: _ColumnJob, num_rows: int) -> pa.Array:
        name = job.definition.embedding_name
        dest_type = job.field.type

        if num_rows == 0:
            return pa.array([], type=dest_type)

        vectors = await call_embedding(
            name,
            job.function.compute_source_embeddings,
            job.values,
            timeout_s=self._config.timeout_s
        )

        if vectors is None or len(vectors) != num_rows:
            raise EmbeddingCountMismatchError(name, num_rows, 0 if vectors is None else len(vectors))

        try:
            rows = to_float32_rows(vectors)
        except (TypeError, ValueError) as e:
            raise FunctionComputeFailedError(name, e) from e
        dim = dest_type.list_size
        for i, row in enumerate(rows):
            if row is None:
                if not job.function.supports_null_source:
                    raise DimensionMismatchError(name, dim, 0, row=i)
            elif row.shape[0] != dim:
                raise DimensionMismatchError(name, dim, row.shape[0], row=i)

        return self._to_vector_array(rows, dest_type)

    def _resolve(self, definition: EmbeddingDefinition) -> EmbeddingFunction:
        try:
            return self._registry.create(definition.embedding_name, **definition.params)
        except NotFoundError as e:
            raise UnknownEmbeddingFunctionError(
                definition.embedding_name, definition.source_column
            ) from e

    @staticmethod
    def _schema_position(schema: pa.Schema, definition: EmbeddingDefinition) -> int:
        index = schema.get_field_index(definition.dest_column)
        return index if index >= 0 else len(schema)

    @staticmethod
    def _dest_field(
        definition: EmbeddingDefinition,
        function: EmbeddingFunction,
        source_type: pa.DataType,
        schema: Optional[pa.Schema]
    ) -> pa.Field:
        if schema is not None and schema.get_field_index(definition.dest_column) >= 0:
            return schema.field(definition.dest_column)
        return pa.field(definition.dest_column, function.dest_type(source_type), nullable=True)

    @staticmethod
    def _to_vector_array(rows: List[Optional[np.ndarray]], dest_type: pa.DataType) -> pa.Array:
        if any(row is None for row in rows):
            return pa.array(
                [None if row is None else row.tolist() for row in rows],
                type=dest_type
            )
        flat = pa.array(np.concatenate(rows)).cast(dest_type.value_type)
        return pa.FixedSizeListArray.from_arrays(flat, dest_type.list_size).cast(dest_type)
