"""
Query-time embedding.

Turns a raw query value into a vector with the same function that fills the
table's vector column, using the function's single-query entry point.
"""

import logging
from typing import Any, Optional

import numpy as np

from tablevec.core.exceptions import (
    DimensionMismatchError,
    FunctionComputeFailedError,
    NotFoundError,
    UnknownEmbeddingFunctionError,
)
from tablevec.core.schema import EmbeddingDefinition
from tablevec.embeddings.registry import EmbeddingRegistry
from tablevec.table.materialize import PipelineConfig, call_embedding

logger = logging.getLogger(__name__)


class QueryEmbedder:
    """Embeds search queries for a table's vector column.

    Example:
        embedder = QueryEmbedder(registry)
        vector = await embedder.embed_query("graph databases", definition, expected_dim=64)
    """

    def __init__(self, registry: EmbeddingRegistry, config: Optional[PipelineConfig] = None):
        self._registry = registry
        self._config = config or PipelineConfig()

    async def embed_query(
        self,
        raw_query: Any,
        definition: EmbeddingDefinition,
        expected_dim: Optional[int] = None
    ) -> np.ndarray:
        """Compute the query vector.

        Args:
            raw_query: Query value of the source column's type
            definition: Definition owning the target vector column
            expected_dim: Dimension of the vector column; defaults to the
                function's `dest_type` dimension

        Returns:
            float32 vector

        Raises:
            UnknownEmbeddingFunctionError: Function not registered
            FunctionComputeFailedError: Provider raised
            DimensionMismatchError: Vector has the wrong dimension
        """
        try:
            function = self._registry.create(definition.embedding_name, **definition.params)
        except NotFoundError as e:
            raise UnknownEmbeddingFunctionError(
                definition.embedding_name, definition.source_column
            ) from e

        if expected_dim is None:
            expected_dim = function.dest_type(function.source_type()).list_size

        vector = await call_embedding(
            definition.embedding_name,
            function.compute_query_embeddings,
            raw_query,
            timeout_s=self._config.timeout_s
        )

        try:
            vector = np.asarray(vector, dtype=np.float32).reshape(-1)
        except (TypeError, ValueError) as e:
            raise FunctionComputeFailedError(definition.embedding_name, e) from e
        if vector.shape[0] != expected_dim:
            raise DimensionMismatchError(definition.embedding_name, expected_dim, vector.shape[0])

        logger.debug("Embedded query for %s (%d dims)", definition.dest_column, expected_dim)
        return vector
