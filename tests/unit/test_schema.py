"""
Unit tests for embedding definitions and vector types.
"""

import json

import pyarrow as pa
import pytest

from tablevec.core.schema import (
    EMBEDDING_METADATA_KEY,
    EmbeddingDefinition,
    embedding_definitions_from_schema,
    is_vector_type,
    schema_with_definitions,
    schemas_equal,
    vector_dim,
    vector_type,
    vector_types_equal,
)


class TestEmbeddingDefinition:
    """Tests for EmbeddingDefinition."""

    def test_create_definition(self):
        """Test creating a definition with and without a destination."""
        definition = EmbeddingDefinition("text", "stub-embedder")

        assert definition.source_column == "text"
        assert definition.embedding_name == "stub-embedder"
        assert definition.dest_column is None
        assert definition.params == {}

    def test_definition_is_immutable(self):
        """Test definitions cannot be mutated."""
        definition = EmbeddingDefinition("text", "stub-embedder", "vector")

        with pytest.raises(AttributeError):
            definition.dest_column = "other"

    def test_params_are_read_only(self):
        """Test params cannot be changed through the definition or the source dict."""
        params = {"dim": 8}
        definition = EmbeddingDefinition("text", "hashing", "vector", params=params)

        with pytest.raises(TypeError):
            definition.params["dim"] = 16
        params["dim"] = 32

        assert definition.params == {"dim": 8}
        assert definition.to_dict()["params"] == {"dim": 8}
        assert definition.with_dest("other").params == {"dim": 8}

    def test_with_dest_returns_copy(self):
        """Test binding a destination leaves the original untouched."""
        definition = EmbeddingDefinition("text", "stub-embedder")
        bound = definition.with_dest("text_embedding")

        assert bound.dest_column == "text_embedding"
        assert definition.dest_column is None
        assert bound.function_key() == definition.function_key()

    def test_equality_includes_params(self):
        """Test params take part in equality."""
        a = EmbeddingDefinition("text", "hashing", "v", params={"dim": 8})
        b = EmbeddingDefinition("text", "hashing", "v", params={"dim": 8})
        c = EmbeddingDefinition("text", "hashing", "v", params={"dim": 16})

        assert a == b
        assert a != c
        assert hash(a) == hash(b)

    def test_to_dict(self):
        """Test serialization uses the persisted key names."""
        definition = EmbeddingDefinition("text", "hashing", "vector", params={"dim": 8})

        data = definition.to_dict()
        assert data == {
            "source_column": "text",
            "vector_column": "vector",
            "name": "hashing",
            "params": {"dim": 8},
        }

    def test_from_dict_accepts_attribute_names(self):
        """Test loading with dest_column / embedding_name keys."""
        definition = EmbeddingDefinition.from_dict({
            "source_column": "body",
            "embedding_name": "openai",
            "dest_column": "body_vec",
        })

        assert definition == EmbeddingDefinition("body", "openai", "body_vec")

    def test_from_dict_missing_name(self):
        """Test loading fails without a function name."""
        with pytest.raises(ValueError):
            EmbeddingDefinition.from_dict({"source_column": "text"})


class TestVectorTypes:
    """Tests for vector type helpers."""

    def test_vector_type(self):
        """Test vector type is a fixed-size list of float32."""
        t = vector_type(4)

        assert pa.types.is_fixed_size_list(t)
        assert t.list_size == 4
        assert t.value_type == pa.float32()
        assert is_vector_type(t)
        assert vector_dim(t) == 4

    def test_non_vector_types(self):
        """Test plain lists and scalars are not vector types."""
        assert not is_vector_type(pa.list_(pa.float32()))
        assert not is_vector_type(pa.string())
        assert vector_dim(pa.int32()) is None

    def test_vector_types_equal(self):
        """Test equality ignores child field names but not size or element type."""
        named = pa.list_(pa.field("element", pa.float32()), 4)

        assert vector_types_equal(vector_type(4), named)
        assert not vector_types_equal(vector_type(4), vector_type(8))
        assert not vector_types_equal(vector_type(4), pa.list_(pa.float64(), 4))


class TestSchemaMetadata:
    """Tests for persisting definitions in schema metadata."""

    def test_round_trip(self):
        """Test definitions survive being stored in a schema."""
        schema = pa.schema([("text", pa.string()), ("vector", vector_type(4))])
        definitions = [
            EmbeddingDefinition("text", "stub-embedder", "vector"),
        ]

        stored = schema_with_definitions(schema, definitions)

        assert EMBEDDING_METADATA_KEY in stored.metadata
        assert json.loads(stored.metadata[EMBEDDING_METADATA_KEY])[0]["vector_column"] == "vector"
        assert embedding_definitions_from_schema(stored) == definitions

    def test_no_metadata(self):
        """Test a plain schema has no definitions."""
        assert embedding_definitions_from_schema(pa.schema([("a", pa.int32())])) == []

    def test_clearing_definitions(self):
        """Test storing an empty list removes the metadata key."""
        schema = schema_with_definitions(
            pa.schema([("text", pa.string())]),
            [EmbeddingDefinition("text", "stub-embedder", "vector")]
        )

        cleared = schema_with_definitions(schema, [])
        assert EMBEDDING_METADATA_KEY not in (cleared.metadata or {})

    def test_schemas_equal(self):
        """Test schema comparison covers fields and definitions only."""
        base = pa.schema([("text", pa.string())])
        with_defs = schema_with_definitions(base, [EmbeddingDefinition("text", "a", "v")])
        other_defs = schema_with_definitions(base, [EmbeddingDefinition("text", "b", "v")])
        extra_metadata = with_defs.with_metadata({
            **with_defs.metadata, b"owner": b"someone"
        })

        assert schemas_equal(with_defs, extra_metadata)
        assert not schemas_equal(with_defs, other_defs)
        assert not schemas_equal(base, pa.schema([("text", pa.large_string())]))
