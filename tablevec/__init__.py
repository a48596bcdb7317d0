"""
TableVec - Embedding-aware tables

Declare that a table's vector column is derived from a source column by a
named embedding function, and stop pre-computing vectors yourself.

Quick Start:
    import tablevec
    from tablevec import EmbeddingDefinition

    db = tablevec.connect()

    table = await db.create_table(
        "docs",
        [{"id": 1, "text": "graph databases"}, {"id": 2, "text": "vector search"}],
        embeddings=[EmbeddingDefinition("text", "hashing")]
    )

    # text_embedding is computed on write...
    await table.add([{"id": 3, "text": "columnar storage"}])

    # ...and the query is embedded with the same function
    hits = await table.search("vector databases", k=2)
"""

__version__ = "0.1.0"

# Core imports
from tablevec.core.schema import EmbeddingDefinition, vector_type
from tablevec.core.exceptions import (
    TableVecError,
    RegistryError,
    DuplicateNameError,
    NotFoundError,
    SchemaError,
    SourceColumnMissingError,
    UnknownEmbeddingFunctionError,
    IncompatibleDestTypeError,
    IncompatibleSourceTypeError,
    DestNameCollisionError,
    SchemaMismatchError,
    MaterializationError,
    SourceColumnHasNullsError,
    EmbeddingCountMismatchError,
    DimensionMismatchError,
    FunctionComputeFailedError,
    QueryEmbeddingError,
    TableError,
    TableExistsError,
    TableNotFoundError,
    ConfigError,
)

# Embedding imports
from tablevec.embeddings import EmbeddingFunction, EmbeddingRegistry, HashingEmbeddings

# Table imports
from tablevec.table import (
    SchemaReconciler,
    MaterializationPipeline,
    PipelineConfig,
    QueryEmbedder,
    Table,
    CreateMode,
    CreateTableBuilder,
)

# Store imports
from tablevec.store import TableStore, MemTableStore

# Configuration
from tablevec.config import (
    EmbeddingConfig,
    create_registry_from_config,
    create_registry_from_yaml,
    load_definitions_from_yaml,
)

from tablevec.db import Database, connect


# Convenience exports
__all__ = [
    "__version__",
    # Connection
    "connect",
    "Database",
    # Definitions
    "EmbeddingDefinition",
    "vector_type",
    # Embeddings
    "EmbeddingFunction",
    "EmbeddingRegistry",
    "HashingEmbeddings",
    # Tables
    "SchemaReconciler",
    "MaterializationPipeline",
    "PipelineConfig",
    "QueryEmbedder",
    "Table",
    "CreateMode",
    "CreateTableBuilder",
    # Store
    "TableStore",
    "MemTableStore",
    # Configuration
    "EmbeddingConfig",
    "create_registry_from_config",
    "create_registry_from_yaml",
    "load_definitions_from_yaml",
    # Errors
    "TableVecError",
    "RegistryError",
    "DuplicateNameError",
    "NotFoundError",
    "SchemaError",
    "SourceColumnMissingError",
    "UnknownEmbeddingFunctionError",
    "IncompatibleDestTypeError",
    "IncompatibleSourceTypeError",
    "DestNameCollisionError",
    "SchemaMismatchError",
    "MaterializationError",
    "SourceColumnHasNullsError",
    "EmbeddingCountMismatchError",
    "DimensionMismatchError",
    "FunctionComputeFailedError",
    "QueryEmbeddingError",
    "TableError",
    "TableExistsError",
    "TableNotFoundError",
    "ConfigError",
]
