"""
Schema reconciliation.

Validates embedding definitions against a table schema at creation time and
derives the final schema: missing vector columns are appended, existing ones
are type-checked, and the resolved definitions are stored in the schema
metadata.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import pyarrow as pa

from tablevec.core.exceptions import (
    DestNameCollisionError,
    IncompatibleDestTypeError,
    IncompatibleSourceTypeError,
    NotFoundError,
    SourceColumnMissingError,
    UnknownEmbeddingFunctionError,
)
from tablevec.core.schema import (
    DEFAULT_DEST_SUFFIX,
    EmbeddingDefinition,
    embedding_definitions_from_schema,
    schema_with_definitions,
    vector_types_equal,
)
from tablevec.embeddings.base import EmbeddingFunction
from tablevec.embeddings.registry import EmbeddingRegistry

logger = logging.getLogger(__name__)


@dataclass
class ReconciledSchema:
    """Result of reconciliation.

    Attributes:
        schema: Augmented schema, definitions stored in its metadata
        definitions: Definitions with concrete destination columns, in
            declaration order
        functions: Destination column -> resolved embedding function
    """
    schema: pa.Schema
    definitions: List[EmbeddingDefinition] = field(default_factory=list)
    functions: Dict[str, EmbeddingFunction] = field(default_factory=dict)


def synthesize_dest_name(
    definition: EmbeddingDefinition,
    definitions: Sequence[EmbeddingDefinition]
) -> str:
    """Derive a destination column name for a definition that omits one.

    `<source>_embedding` when the source column is embedded once in the set;
    `<source>_<embedding_name>` when several definitions share the source.
    """
    shared = sum(1 for d in definitions if d.source_column == definition.source_column)
    if shared > 1:
        return f"{definition.source_column}_{definition.embedding_name}"
    return f"{definition.source_column}_{DEFAULT_DEST_SUFFIX}"


class SchemaReconciler:
    """Reconciles embedding definitions with a table schema.

    No I/O happens here; persisting the result is the caller's job.

    Example:
        reconciler = SchemaReconciler(registry)
        result = reconciler.reconcile(
            pa.schema([("id", pa.int32()), ("text", pa.string())]),
            [EmbeddingDefinition("text", "hashing")]
        )
        result.schema.names  # ['id', 'text', 'text_embedding']
    """

    def __init__(self, registry: EmbeddingRegistry):
        self._registry = registry

    def reconcile(
        self,
        schema: pa.Schema,
        definitions: Sequence[EmbeddingDefinition]
    ) -> ReconciledSchema:
        """Validate definitions and derive the augmented schema.

        Args:
            schema: Base table schema
            definitions: Embedding definitions in declaration order

        Returns:
            ReconciledSchema

        Raises:
            SourceColumnMissingError: Source column not in schema
            UnknownEmbeddingFunctionError: Function not registered
            IncompatibleSourceTypeError: Function cannot embed the source type
            IncompatibleDestTypeError: Existing vector column has another type
            DestNameCollisionError: Destination clashes with a field or
                another definition
        """
        definitions = list(definitions)
        fields = list(schema)
        field_names = {f.name: i for i, f in enumerate(fields)}
        source_columns = {d.source_column for d in definitions}

        # Destinations recorded by an earlier reconciliation of this schema
        owned = {
            d.dest_column: d.function_key()
            for d in embedding_definitions_from_schema(schema)
        }

        resolved = []
        functions = {}
        claimed = set()

        for definition in definitions:
            if definition.source_column not in field_names:
                raise SourceColumnMissingError(definition.source_column, schema.names)
            source_field = fields[field_names[definition.source_column]]

            function = self.resolve_function(definition)
            if not function.source_type_compatible(source_field.type):
                raise IncompatibleSourceTypeError(
                    definition.source_column, function.source_type(), source_field.type
                )
            expected = function.dest_type(source_field.type)

            synthesized = definition.dest_column is None
            dest = (
                synthesize_dest_name(definition, definitions)
                if synthesized else definition.dest_column
            )

            if dest in claimed:
                raise DestNameCollisionError(dest, "is produced by more than one embedding definition")
            if dest in source_columns:
                raise DestNameCollisionError(dest, "is also used as a source column")

            if dest in field_names:
                if synthesized and owned.get(dest) != definition.function_key():
                    raise DestNameCollisionError(dest)
                actual = fields[field_names[dest]].type
                if not vector_types_equal(actual, expected):
                    raise IncompatibleDestTypeError(dest, expected, actual)
                action = "validated"
            else:
                field_names[dest] = len(fields)
                fields.append(pa.field(dest, expected, nullable=True))
                action = "created"

            logger.debug(
                "Embedding %s -> %s via '%s': %s %s",
                definition.source_column, dest, definition.embedding_name, action, expected
            )
            claimed.add(dest)
            resolved.append(definition.with_dest(dest))
            functions[dest] = function

        augmented = schema_with_definitions(
            pa.schema(fields, metadata=schema.metadata), resolved
        )
        return ReconciledSchema(schema=augmented, definitions=resolved, functions=functions)

    def resolve_function(self, definition: EmbeddingDefinition) -> EmbeddingFunction:
        """Create the definition's function, translating registry misses."""
        try:
            return self._registry.create(definition.embedding_name, **definition.params)
        except NotFoundError as e:
            raise UnknownEmbeddingFunctionError(
                definition.embedding_name, definition.source_column
            ) from e
