"""
OpenAI embedding function.

This module provides an embedding function backed by OpenAI's
text-embedding models.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI

from tablevec.config import resolve_openai_api_key
from tablevec.embeddings.base import EmbeddingFunction

logger = logging.getLogger(__name__)


class OpenAIEmbeddings(EmbeddingFunction):
    """OpenAI implementation of the EmbeddingFunction interface.

    Example:
        func = OpenAIEmbeddings(model="text-embedding-3-small")
        vector = func.compute_query_embeddings("What is a transformer?")
        print(len(vector))  # 1536
    """

    # Model dimension mappings
    MODEL_DIMENSIONS = {
        "text-embedding-ada-002": 1536,
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
    }

    # OpenAI supports up to 2048 inputs per request
    MAX_BATCH_SIZE = 2048

    def __init__(
        self,
        model: str = "text-embedding-ada-002",
        api_key: str = None,
        dimensions: Optional[int] = None,
        batch_size: int = MAX_BATCH_SIZE,
        client: OpenAI = None
    ):
        """Initialize OpenAI embedding function.

        Args:
            model: Embedding model name
            api_key: OpenAI API key (falls back to OPENAI_API_KEY, .env included)
            dimensions: Shortened output size (text-embedding-3 models only)
            batch_size: Inputs per request, at most 2048
            client: Optional pre-configured OpenAI client

        Raises:
            ValueError: If the model or options are not supported
        """
        if model not in self.MODEL_DIMENSIONS:
            raise ValueError(
                f"Unsupported model: {model}. "
                f"Choose from {list(self.MODEL_DIMENSIONS.keys())}"
            )
        if dimensions is not None and model == "text-embedding-ada-002":
            raise ValueError("text-embedding-ada-002 does not support custom dimensions")
        if not 0 < batch_size <= self.MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be in 1..{self.MAX_BATCH_SIZE}, got {batch_size}")

        self._model = model
        self._dimensions = dimensions
        self._batch_size = batch_size
        self._client = client or OpenAI(api_key=resolve_openai_api_key(api_key))

    def ndims(self) -> int:
        return self._dimensions or self.MODEL_DIMENSIONS[self._model]

    def compute_source_embeddings(self, values: Sequence[str]) -> List[List[float]]:
        """Embed a batch of texts.

        Note:
            Batches larger than `batch_size` are split into several requests;
            results are concatenated in input order.
        """
        texts = list(values)
        if not texts:
            return []

        all_embeddings = []
        for i in range(0, len(texts), self._batch_size):
            chunk = texts[i:i + self._batch_size]
            response = self._client.embeddings.create(**self._request(chunk))
            all_embeddings.extend(data.embedding for data in response.data)

        logger.debug("Embedded %d texts with %s", len(texts), self._model)
        return all_embeddings

    def compute_query_embeddings(self, query: str) -> List[float]:
        response = self._client.embeddings.create(**self._request(query))
        return response.data[0].embedding

    def config(self) -> Dict[str, Any]:
        return {
            "model": self._model,
            "dimensions": self._dimensions,
            "batch_size": self._batch_size,
        }

    @property
    def model_name(self) -> str:
        """Get the name of the embedding model."""
        return self._model

    def _request(self, payload) -> Dict[str, Any]:
        request = {"model": self._model, "input": payload}
        if self._dimensions is not None:
            request["dimensions"] = self._dimensions
        return request
