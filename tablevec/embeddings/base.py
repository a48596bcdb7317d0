"""
Base embedding function interface.

This module defines the contract every embedding provider implements, so
that tables can derive vector columns from source columns without knowing
which model (OpenAI, sentence-transformers, a user's own code) is behind it.
"""

from abc import ABC, abstractmethod
import json
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pyarrow as pa

from tablevec.core.schema import vector_type


class EmbeddingFunction(ABC):
    """Abstract base class for embedding functions.

    Subclasses implement `ndims`, `compute_source_embeddings` and
    `compute_query_embeddings`. Either compute method may be declared
    `async def`; plain methods are run in a worker thread by the pipeline.

    Instances hold configuration fixed at construction (model name, device,
    batch size) and no per-table state.

    Example:
        class MyEmbeddings(EmbeddingFunction):
            def ndims(self):
                return 4

            def compute_source_embeddings(self, values):
                return [[0.0, 0.0, 0.0, 1.0] for _ in values]

            def compute_query_embeddings(self, query):
                return [0.0, 0.0, 0.0, 1.0]

        registry.register("mine", MyEmbeddings)
    """

    # Functions that can embed a null source value set this to True.
    supports_null_source: bool = False

    # Registry key this instance was created under; set by the registry.
    name: Optional[str] = None

    def source_type(self) -> pa.DataType:
        """Arrow type of a single source value.

        Returns:
            Expected source type (UTF-8 text by default)
        """
        return pa.string()

    def source_type_compatible(self, data_type: pa.DataType) -> bool:
        """Check whether a source column type can be fed to this function."""
        expected = self.source_type()
        if pa.types.is_string(expected) or pa.types.is_large_string(expected):
            return pa.types.is_string(data_type) or pa.types.is_large_string(data_type)
        return data_type.equals(expected)

    @abstractmethod
    def ndims(self) -> int:
        """Get embedding dimension size.

        Returns:
            Number of dimensions in each output vector
        """
        ...

    def dest_type(self, source_type: pa.DataType = None) -> pa.DataType:
        """Arrow type of the vector column produced from `source_type`.

        Args:
            source_type: Type of the source column

        Returns:
            Fixed-size list of float32 with `ndims()` elements
        """
        return vector_type(self.ndims())

    @abstractmethod
    def compute_source_embeddings(self, values: Sequence[Any]) -> Sequence[Any]:
        """Embed a whole batch of source values in one call.

        Args:
            values: Every source value of the batch, in row order

        Returns:
            One vector per input value, in the same order
        """
        ...

    @abstractmethod
    def compute_query_embeddings(self, query: Any) -> Any:
        """Embed a single query value.

        Args:
            query: Raw query value of the source type

        Returns:
            Query vector
        """
        ...

    def config(self) -> Dict[str, Any]:
        """Construction parameters, used for equality and persistence."""
        return {}

    def __eq__(self, other) -> bool:
        if not isinstance(other, EmbeddingFunction):
            return NotImplemented
        return type(self) is type(other) and self.config() == other.config()

    def __hash__(self) -> int:
        return hash((type(self), json.dumps(self.config(), sort_keys=True, default=str)))

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.config().items())
        return f"{type(self).__name__}({params})"


def to_float32_rows(vectors: Sequence[Any]) -> List[Optional[np.ndarray]]:
    """Normalise provider output (lists, arrays, 2-D arrays) to float32 rows.

    None entries are kept as None so null vectors stay aligned with rows.
    """
    if isinstance(vectors, np.ndarray) and vectors.ndim == 2:
        return list(vectors.astype(np.float32, copy=False))
    return [
        None if v is None else np.asarray(v, dtype=np.float32).reshape(-1)
        for v in vectors
    ]
