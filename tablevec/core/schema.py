"""
Embedding definitions and vector column types.

An EmbeddingDefinition binds a source column to a named embedding function
and (optionally) a destination vector column. Reconciled definitions are
persisted in the Arrow schema metadata so a table can be reopened with the
same embedding behaviour.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional
import json

import pyarrow as pa


EMBEDDING_METADATA_KEY = b"embedding_functions"
DEFAULT_DEST_SUFFIX = "embedding"


def vector_type(dim: int) -> pa.DataType:
    """Arrow type of a vector column: fixed-size list of float32."""
    return pa.list_(pa.field("item", pa.float32()), dim)


def is_vector_type(data_type: pa.DataType) -> bool:
    """Check whether a type is a fixed-size list of floats."""
    return (
        pa.types.is_fixed_size_list(data_type)
        and pa.types.is_floating(data_type.value_type)
    )


def vector_dim(data_type: pa.DataType) -> Optional[int]:
    """Fixed dimension of a vector type, or None for anything else."""
    if pa.types.is_fixed_size_list(data_type):
        return data_type.list_size
    return None


def vector_types_equal(left: pa.DataType, right: pa.DataType) -> bool:
    """Same element type and same fixed dimension. Child field names are ignored."""
    if not (pa.types.is_fixed_size_list(left) and pa.types.is_fixed_size_list(right)):
        return left.equals(right)
    return (
        left.list_size == right.list_size
        and left.value_type.equals(right.value_type)
    )


@dataclass(frozen=True)
class EmbeddingDefinition:
    """Binding between a source column, a registered function and a vector column.

    Attributes:
        source_column: Field holding the raw values to embed (e.g. "text")
        embedding_name: Name the function is registered under
        dest_column: Vector field name; derived at reconciliation if None
        params: Construction parameters passed to the registry's factory
            (read-only)

    Example:
        definition = EmbeddingDefinition("text", "openai", "vector")
    """
    source_column: str
    embedding_name: str
    dest_column: Optional[str] = None
    params: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        # Read-only copy; the caller's dict stays independent
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def with_dest(self, dest_column: str) -> "EmbeddingDefinition":
        """Return a copy bound to a concrete destination column."""
        return replace(self, dest_column=dest_column)

    def function_key(self) -> tuple:
        """Identity of the (source, function, params) triple, ignoring destination."""
        return (
            self.source_column,
            self.embedding_name,
            json.dumps(dict(self.params), sort_keys=True, default=str),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize definition to dictionary."""
        return {
            "source_column": self.source_column,
            "vector_column": self.dest_column,
            "name": self.embedding_name,
            "params": dict(self.params),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmbeddingDefinition":
        """Load a definition from its dictionary form.

        Accepts both the persisted keys (`vector_column`, `name`) and the
        attribute names (`dest_column`, `embedding_name`) so YAML files can
        use either.
        """
        embedding_name = data.get("name", data.get("embedding_name"))
        if "source_column" not in data or not embedding_name:
            raise ValueError(
                f"Embedding definition needs 'source_column' and 'name': {data}"
            )
        return cls(
            source_column=data["source_column"],
            embedding_name=embedding_name,
            dest_column=data.get("vector_column", data.get("dest_column")),
            params=dict(data.get("params") or {}),
        )

    def __repr__(self) -> str:
        return (
            f"EmbeddingDefinition(source='{self.source_column}', "
            f"function='{self.embedding_name}', dest={self.dest_column!r})"
        )


def embedding_definitions_from_schema(schema: pa.Schema) -> List[EmbeddingDefinition]:
    """Read the definitions persisted in a schema's metadata.

    Args:
        schema: Arrow schema, possibly carrying embedding metadata

    Returns:
        Definitions in declaration order (empty if none)
    """
    metadata = schema.metadata or {}
    raw = metadata.get(EMBEDDING_METADATA_KEY)
    if not raw:
        return []
    return [EmbeddingDefinition.from_dict(item) for item in json.loads(raw)]


def schema_with_definitions(
    schema: pa.Schema,
    definitions: List[EmbeddingDefinition]
) -> pa.Schema:
    """Attach definitions to a schema's metadata, replacing any previous ones."""
    metadata = dict(schema.metadata or {})
    if definitions:
        metadata[EMBEDDING_METADATA_KEY] = json.dumps(
            [d.to_dict() for d in definitions]
        ).encode("utf-8")
    else:
        metadata.pop(EMBEDDING_METADATA_KEY, None)
    return schema.with_metadata(metadata)


def schemas_equal(left: pa.Schema, right: pa.Schema) -> bool:
    """Compare fields and embedding metadata; other metadata is ignored."""
    if not left.equals(right, check_metadata=False):
        return False
    return (
        embedding_definitions_from_schema(left)
        == embedding_definitions_from_schema(right)
    )
