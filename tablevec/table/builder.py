"""
Fluent table creation.

Collects a schema, initial data and embedding definitions, reconciles them,
and only then touches storage. A failed reconciliation or materialization
leaves no table behind.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Union

import pyarrow as pa

from tablevec.core.exceptions import (
    DestNameCollisionError,
    SchemaMismatchError,
    TableExistsError,
)
from tablevec.core.schema import EmbeddingDefinition, schemas_equal
from tablevec.table.materialize import MaterializationPipeline
from tablevec.table.reconcile import SchemaReconciler
from tablevec.table.table import Data, Table, to_batches

if TYPE_CHECKING:
    from tablevec.db import Database

logger = logging.getLogger(__name__)


class CreateMode(Enum):
    """How table creation treats an existing table of the same name."""
    CREATE = "create"        # Fail if it exists
    OVERWRITE = "overwrite"  # Replace schema, definitions and data
    EXIST_OK = "exist_ok"    # Reuse if the reconciled schema is identical


class CreateTableBuilder:
    """Builder returned by `Database.create_table` / `create_empty_table`.

    The builder is awaitable, so both forms work:

        table = await db.create_table("docs", data, embeddings=[definition])

        table = await (
            db.create_empty_table("docs", schema)
            .mode(CreateMode.OVERWRITE)
            .add_embedding(EmbeddingDefinition("text", "hashing", "vector"))
            .execute()
        )
    """

    def __init__(
        self,
        db: "Database",
        name: str,
        schema: Optional[pa.Schema] = None,
        data: Optional[Data] = None
    ):
        self._db = db
        self._name = name
        self._schema = schema
        self._data = data
        self._mode = CreateMode.CREATE
        self._definitions: List[EmbeddingDefinition] = []

    def mode(self, mode: Union[CreateMode, str]) -> "CreateTableBuilder":
        """Set the creation mode ("create", "overwrite" or "exist_ok")."""
        self._mode = CreateMode(mode)
        return self

    def data(self, data: Data) -> "CreateTableBuilder":
        """Set initial rows."""
        self._data = data
        return self

    def add_embedding(self, definition: EmbeddingDefinition) -> "CreateTableBuilder":
        """Attach an embedding definition.

        Raises:
            DestNameCollisionError: If another definition already targets
                the same explicit destination column
        """
        if definition.dest_column is not None and any(
            d.dest_column == definition.dest_column for d in self._definitions
        ):
            raise DestNameCollisionError(
                definition.dest_column, "is produced by more than one embedding definition"
            )
        self._definitions.append(definition)
        return self

    @property
    def definitions(self) -> List[EmbeddingDefinition]:
        return list(self._definitions)

    async def execute(self) -> Table:
        """Reconcile, materialize initial data, then create the table.

        Returns:
            Table

        Raises:
            SchemaError: Reconciliation failed (nothing created)
            MaterializationError: Initial data failed (nothing created)
            TableExistsError: Table exists and mode is CREATE
            SchemaMismatchError: Table exists with another schema and mode
                is EXIST_OK
        """
        batches = to_batches(self._data, self._schema) if self._data is not None else []
        schema = self._schema
        if schema is None and isinstance(self._data, (pa.Table, pa.RecordBatch)):
            # Arrow data carries its schema even with zero rows
            schema = self._data.schema
        if schema is None:
            if not batches:
                raise ValueError(f"Table '{self._name}' needs a schema or initial data")
            schema = batches[0].schema

        reconciled = SchemaReconciler(self._db.embedding_registry()).reconcile(
            schema, self._definitions
        )
        store = self._db.store
        exists = store.exists(self._name)

        if exists and self._mode == CreateMode.CREATE:
            raise TableExistsError(self._name)

        if exists and self._mode == CreateMode.EXIST_OK:
            existing = store.get_schema(self._name)
            if not schemas_equal(existing, reconciled.schema):
                raise SchemaMismatchError(self._name, reconciled.schema, existing)
            table = self._db.table(self._name)
            if batches:
                await table.add(batches)
            logger.info("Reusing existing table '%s'", self._name)
            return table

        pipeline = MaterializationPipeline(self._db.embedding_registry(), self._db.pipeline_config)
        materialized = await pipeline.materialize_all(
            batches, reconciled.definitions, reconciled.schema
        )

        store.create(self._name, reconciled.schema, overwrite=self._mode == CreateMode.OVERWRITE)
        if materialized:
            try:
                store.append(self._name, materialized)
            except Exception:
                store.drop(self._name)
                raise

        logger.info(
            "Created table '%s' with %d embedding definition(s)",
            self._name, len(reconciled.definitions)
        )
        return self._db.table(self._name)

    def __await__(self):
        return self.execute().__await__()
