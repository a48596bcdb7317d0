"""
Database connection.

A Database ties a table store to an embedding registry. Several connections
may share one registry; the registry outlives any of them.
"""

import logging
from typing import List, Optional, Sequence, Union

import pyarrow as pa

from tablevec.config import EmbeddingConfig, create_registry_from_config
from tablevec.core.schema import EmbeddingDefinition
from tablevec.embeddings.registry import EmbeddingRegistry
from tablevec.store.base import TableStore, create_table_store
from tablevec.table.builder import CreateMode, CreateTableBuilder
from tablevec.table.materialize import PipelineConfig
from tablevec.table.table import Data, Table

logger = logging.getLogger(__name__)


class Database:
    """Connection to a table store with embedding support.

    Example:
        db = tablevec.connect()
        table = await db.create_table(
            "docs",
            [{"id": 1, "text": "graph databases"}],
            embeddings=[EmbeddingDefinition("text", "hashing")]
        )
    """

    def __init__(
        self,
        store: TableStore,
        registry: EmbeddingRegistry,
        pipeline_config: Optional[PipelineConfig] = None
    ):
        self._store = store
        self._registry = registry
        self._pipeline_config = pipeline_config or PipelineConfig()

    @property
    def store(self) -> TableStore:
        return self._store

    @property
    def pipeline_config(self) -> PipelineConfig:
        return self._pipeline_config

    def embedding_registry(self) -> EmbeddingRegistry:
        """Registry shared by every table of this connection."""
        return self._registry

    def create_table(
        self,
        name: str,
        data: Optional[Data] = None,
        schema: Optional[pa.Schema] = None,
        embeddings: Optional[Sequence[EmbeddingDefinition]] = None,
        mode: Union[CreateMode, str] = CreateMode.CREATE
    ) -> CreateTableBuilder:
        """Start creating a table. Await the result (or call `execute()`).

        Args:
            name: Table name
            data: Optional initial rows
            schema: Base schema; inferred from `data` when omitted
            embeddings: Embedding definitions
            mode: Creation mode

        Returns:
            CreateTableBuilder
        """
        builder = CreateTableBuilder(self, name, schema=schema, data=data).mode(mode)
        for definition in embeddings or []:
            builder.add_embedding(definition)
        return builder

    def create_empty_table(self, name: str, schema: pa.Schema) -> CreateTableBuilder:
        """Start creating a table with no initial data."""
        return CreateTableBuilder(self, name, schema=schema)

    async def open_table(self, name: str) -> Table:
        """Open an existing table.

        Raises:
            TableNotFoundError: If the table does not exist
        """
        self._store.get_schema(name)
        return self.table(name)

    def table(self, name: str) -> Table:
        """Table handle without an existence check."""
        return Table(name, self._store, self._registry, self._pipeline_config)

    def table_names(self) -> List[str]:
        return self._store.list_tables()

    def drop_table(self, name: str) -> None:
        """Drop a table together with its embedding definitions."""
        self._store.drop(name)

    def close(self) -> None:
        """Close the store connection."""
        self._store.disconnect()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"Database(store={self._store!r}, registry={self._registry!r})"


def connect(
    uri: str = "memory://",
    registry: Optional[EmbeddingRegistry] = None,
    config: Optional[EmbeddingConfig] = None,
    store: Optional[TableStore] = None
) -> Database:
    """Connect to a table store.

    Args:
        uri: Store URI; "memory://" selects the in-memory store
        registry: Registry to share; a new one with the built-in providers
            is created when omitted
        config: Optional embedding configuration (overwrite policy, timeouts)
        store: Pre-built store, overrides `uri`

    Returns:
        Database

    Example:
        registry = EmbeddingRegistry.with_builtins()
        db1 = connect(registry=registry)
        db2 = connect(registry=registry)  # shares registrations with db1
    """
    config = config or EmbeddingConfig()

    if registry is None:
        registry = create_registry_from_config({
            "registry": {"allow_overwrite": config.allow_overwrite},
            "embeddings": config.embeddings,
        })

    if store is None:
        scheme = uri.split("://", 1)[0] if "://" in uri else uri
        store = create_table_store(scheme, uri=uri)

    logger.info("Connected to %s", uri)
    return Database(store, registry, PipelineConfig(timeout_s=config.timeout_s))
