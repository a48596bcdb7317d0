"""
Unit tests for the built-in embedding functions.
"""

from types import SimpleNamespace
from unittest.mock import Mock, patch

import numpy as np
import pyarrow as pa
import pytest

from tablevec.core.exceptions import ConfigError
from tablevec.core.schema import vector_type
from tablevec.embeddings import HashingEmbeddings
from tablevec.embeddings.base import to_float32_rows
from tablevec.embeddings.openai import OpenAIEmbeddings
from tablevec.embeddings.sentence_transformers import SentenceTransformerEmbeddings


def fake_response(vectors):
    return SimpleNamespace(data=[SimpleNamespace(embedding=v) for v in vectors])


class TestEmbeddingFunctionBase:
    """Tests for defaults provided by EmbeddingFunction."""

    def test_default_types(self, stub):
        """Test text source type and fixed-size float32 destination."""
        assert stub.source_type() == pa.string()
        assert stub.dest_type(pa.string()) == vector_type(4)
        assert stub.supports_null_source is False

    def test_source_type_compatibility(self, stub):
        assert stub.source_type_compatible(pa.string())
        assert stub.source_type_compatible(pa.large_string())
        assert not stub.source_type_compatible(pa.int64())
        assert not stub.source_type_compatible(pa.binary())

    def test_equality_by_type_and_config(self, stub_cls):
        """Test functions compare by class and construction parameters."""
        assert stub_cls(dim=4) == stub_cls(dim=4)
        assert stub_cls(dim=4) != stub_cls(dim=8)
        assert HashingEmbeddings(dim=4) != stub_cls(dim=4)
        assert len({stub_cls(dim=4), stub_cls(dim=4)}) == 1

    def test_to_float32_rows(self):
        """Test lists, matrices and None entries are normalised."""
        rows = to_float32_rows([[1, 2], None, np.array([3.0, 4.0], dtype=np.float64)])

        assert rows[0].dtype == np.float32
        assert rows[1] is None
        assert rows[2].tolist() == [3.0, 4.0]

        matrix_rows = to_float32_rows(np.ones((3, 2)))
        assert len(matrix_rows) == 3
        assert matrix_rows[0].dtype == np.float32


class TestHashingEmbeddings:
    """Tests for HashingEmbeddings."""

    def test_shape_and_dtype(self):
        func = HashingEmbeddings(dim=16)

        matrix = func.compute_source_embeddings(["hello world", "graph", ""])

        assert matrix.shape == (3, 16)
        assert matrix.dtype == np.float32

    def test_deterministic(self):
        """Test identical text always maps to the same vector."""
        a = HashingEmbeddings(dim=32).compute_query_embeddings("Knowledge graphs")
        b = HashingEmbeddings(dim=32).compute_query_embeddings("Knowledge graphs")

        np.testing.assert_array_equal(a, b)

    def test_normalized(self):
        vector = HashingEmbeddings(dim=32).compute_query_embeddings("some words here")
        assert np.linalg.norm(vector) == pytest.approx(1.0, rel=1e-5)

    def test_empty_text_is_zero(self):
        vector = HashingEmbeddings(dim=8).compute_query_embeddings("")
        assert not vector.any()

    def test_lowercase_option(self):
        """Test case folding is configurable."""
        folded = HashingEmbeddings(dim=32)
        exact = HashingEmbeddings(dim=32, lowercase=False)

        np.testing.assert_array_equal(
            folded.compute_query_embeddings("Graph"),
            folded.compute_query_embeddings("graph")
        )
        assert not np.array_equal(
            exact.compute_query_embeddings("Graph"),
            exact.compute_query_embeddings("graph")
        )

    def test_invalid_dim(self):
        with pytest.raises(ValueError):
            HashingEmbeddings(dim=0)


class TestOpenAIEmbeddings:
    """Tests for OpenAIEmbeddings with a mocked client."""

    def test_batch_embedding(self):
        """Test one request per batch and order preserved."""
        client = Mock()
        client.embeddings.create.return_value = fake_response([[0.1] * 3, [0.2] * 3])
        func = OpenAIEmbeddings(model="text-embedding-3-small", dimensions=3, client=client)

        vectors = func.compute_source_embeddings(["a", "b"])

        assert vectors == [[0.1] * 3, [0.2] * 3]
        client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input=["a", "b"], dimensions=3
        )

    def test_large_batches_are_chunked(self):
        """Test inputs beyond batch_size are split into several requests."""
        client = Mock()
        client.embeddings.create.side_effect = lambda model, input: fake_response(
            [[float(len(text))] for text in input]
        )
        func = OpenAIEmbeddings(batch_size=2, client=client)

        vectors = func.compute_source_embeddings(["a", "bb", "ccc", "dddd", "eeeee"])

        assert vectors == [[1.0], [2.0], [3.0], [4.0], [5.0]]
        assert client.embeddings.create.call_count == 3

    def test_empty_batch_makes_no_request(self):
        client = Mock()
        func = OpenAIEmbeddings(client=client)

        assert func.compute_source_embeddings([]) == []
        client.embeddings.create.assert_not_called()

    def test_query_embedding(self):
        client = Mock()
        client.embeddings.create.return_value = fake_response([[0.5, 0.5]])
        func = OpenAIEmbeddings(client=client)

        assert func.compute_query_embeddings("question") == [0.5, 0.5]
        client.embeddings.create.assert_called_once_with(
            model="text-embedding-ada-002", input="question"
        )

    def test_dimensions(self):
        """Test ndims follows the model table and the dimensions override."""
        client = Mock()

        assert OpenAIEmbeddings(client=client).ndims() == 1536
        assert OpenAIEmbeddings(model="text-embedding-3-large", client=client).ndims() == 3072
        assert OpenAIEmbeddings(
            model="text-embedding-3-small", dimensions=256, client=client
        ).ndims() == 256

    def test_invalid_options(self):
        client = Mock()

        with pytest.raises(ValueError):
            OpenAIEmbeddings(model="not-a-model", client=client)
        with pytest.raises(ValueError):
            OpenAIEmbeddings(dimensions=256, client=client)
        with pytest.raises(ValueError):
            OpenAIEmbeddings(batch_size=5000, client=client)

    @patch("tablevec.embeddings.openai.OpenAI")
    def test_api_key_from_environment(self, mock_openai, monkeypatch):
        """Test the key is read from OPENAI_API_KEY when not passed."""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        OpenAIEmbeddings()

        mock_openai.assert_called_once_with(api_key="sk-test")

    @patch("tablevec.config.load_dotenv")
    def test_missing_api_key(self, mock_load_dotenv, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ConfigError):
            OpenAIEmbeddings()

    def test_config(self):
        func = OpenAIEmbeddings(model="text-embedding-3-small", client=Mock())

        assert func.config() == {
            "model": "text-embedding-3-small",
            "dimensions": None,
            "batch_size": 2048,
        }
        assert func.model_name == "text-embedding-3-small"


class TestSentenceTransformerEmbeddings:
    """Tests for SentenceTransformerEmbeddings with the model replaced."""

    def setup_method(self):
        self.model = Mock()
        self.model.get_sentence_embedding_dimension.return_value = 3
        self.model.encode.side_effect = lambda texts, **kwargs: np.ones((len(texts), 3))
        self.func = SentenceTransformerEmbeddings()
        self.func._model = self.model

    def test_ndims_from_model(self):
        assert self.func.ndims() == 3

    def test_encode_batch(self):
        matrix = self.func.compute_source_embeddings(["a", "b"])

        assert matrix.shape == (2, 3)
        _, kwargs = self.model.encode.call_args
        assert kwargs["normalize_embeddings"] is True
        assert kwargs["batch_size"] == 32

    def test_query(self):
        vector = self.func.compute_query_embeddings("a")
        assert vector.shape == (3,)

    def test_construction_is_lazy(self):
        """Test nothing is loaded until the model is needed."""
        func = SentenceTransformerEmbeddings(model_name="some-model")

        assert func._model is None
        assert func.config()["model_name"] == "some-model"
