"""
Shared fixtures: deterministic stub embedding functions and registries.
"""

import asyncio

import pyarrow as pa
import pytest

from tablevec.embeddings import EmbeddingFunction, EmbeddingRegistry, HashingEmbeddings


class StubEmbeddings(EmbeddingFunction):
    """Embeds text as [len(text), offset, offset, ...] and records every call."""

    def __init__(self, dim: int = 4, offset: float = 0.0):
        self._dim = dim
        self._offset = offset
        self.source_calls = []
        self.query_calls = []

    def ndims(self):
        return self._dim

    def compute_source_embeddings(self, values):
        self.source_calls.append(list(values))
        return [self._vector(v) for v in values]

    def compute_query_embeddings(self, query):
        self.query_calls.append(query)
        return self._vector(query)

    def config(self):
        return {"dim": self._dim, "offset": self._offset}

    def _vector(self, value):
        return [float(len(value))] + [self._offset] * (self._dim - 1)


class AsyncStubEmbeddings(StubEmbeddings):
    """Same vectors as StubEmbeddings, computed by coroutines."""

    def __init__(self, dim: int = 4, delay: float = 0.0):
        super().__init__(dim=dim)
        self._delay = delay
        self.cancelled = False

    async def compute_source_embeddings(self, values):
        try:
            await asyncio.sleep(self._delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return StubEmbeddings.compute_source_embeddings(self, values)

    async def compute_query_embeddings(self, query):
        await asyncio.sleep(self._delay)
        return StubEmbeddings.compute_query_embeddings(self, query)


@pytest.fixture
def stub_cls():
    return StubEmbeddings


@pytest.fixture
def async_stub_cls():
    return AsyncStubEmbeddings


@pytest.fixture
def stub():
    """Stub embedder instance (dim=4)."""
    return StubEmbeddings(dim=4)


@pytest.fixture
def registry(stub):
    """Isolated registry with "stub-embedder" (instance) and "hashing" registered."""
    registry = EmbeddingRegistry()
    registry.register("stub-embedder", stub)
    registry.register("hashing", HashingEmbeddings)
    return registry


@pytest.fixture
def base_schema():
    """Schema {id: int32, text: utf8}."""
    return pa.schema([
        pa.field("id", pa.int32()),
        pa.field("text", pa.string()),
    ])
