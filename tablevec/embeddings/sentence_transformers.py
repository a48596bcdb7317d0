"""
Sentence-transformers embedding function.

Runs a local sentence-transformers model. The library is an optional extra
(`pip install tablevec[sentence-transformers]`) and is imported on first use.
"""

import logging
from typing import Any, Dict, Sequence

import numpy as np

from tablevec.embeddings.base import EmbeddingFunction

logger = logging.getLogger(__name__)


class SentenceTransformerEmbeddings(EmbeddingFunction):
    """Local sentence-transformers model behind the EmbeddingFunction interface.

    Example:
        func = SentenceTransformerEmbeddings(model_name="all-MiniLM-L6-v2")
        func.ndims()  # 384
    """

    def __init__(
        self,
        model_name: str = "all-MiniLM-L6-v2",
        device: str = "cpu",
        batch_size: int = 32,
        normalize: bool = True
    ):
        self._model_name = model_name
        self._device = device
        self._batch_size = batch_size
        self._normalize = normalize
        self._model = None
        self._ndims = None

    @property
    def model(self):
        """Loaded model, created on first access."""
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise ImportError(
                    "sentence-transformers is not installed. "
                    "Install with: pip install tablevec[sentence-transformers]"
                ) from e

            logger.info("Loading %s on %s", self._model_name, self._device)
            self._model = SentenceTransformer(self._model_name, device=self._device)
        return self._model

    def ndims(self) -> int:
        if self._ndims is None:
            self._ndims = int(self.model.get_sentence_embedding_dimension())
        return self._ndims

    def compute_source_embeddings(self, values: Sequence[str]) -> np.ndarray:
        return self.model.encode(
            list(values),
            batch_size=self._batch_size,
            normalize_embeddings=self._normalize,
            convert_to_numpy=True,
            show_progress_bar=False,
        )

    def compute_query_embeddings(self, query: str) -> np.ndarray:
        return self.compute_source_embeddings([query])[0]

    def config(self) -> Dict[str, Any]:
        return {
            "model_name": self._model_name,
            "device": self._device,
            "batch_size": self._batch_size,
            "normalize": self._normalize,
        }
