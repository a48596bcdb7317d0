"""
Core value types and exceptions.
"""

from tablevec.core.schema import (
    EmbeddingDefinition,
    EMBEDDING_METADATA_KEY,
    vector_type,
    is_vector_type,
    vector_dim,
    vector_types_equal,
    embedding_definitions_from_schema,
    schema_with_definitions,
    schemas_equal
)

__all__ = [
    "EmbeddingDefinition",
    "EMBEDDING_METADATA_KEY",
    "vector_type",
    "is_vector_type",
    "vector_dim",
    "vector_types_equal",
    "embedding_definitions_from_schema",
    "schema_with_definitions",
    "schemas_equal",
]
