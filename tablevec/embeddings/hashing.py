"""
Feature-hashing embedder.

Deterministic bag-of-words embeddings with no model download and no network.
Useful offline, in tests, and as a baseline.
"""

import hashlib
import re
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from tablevec.embeddings.base import EmbeddingFunction

_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


class HashingEmbeddings(EmbeddingFunction):
    """Signed feature hashing of word tokens into a fixed-size vector.

    Example:
        func = HashingEmbeddings(dim=8)
        func.compute_query_embeddings("graph databases")  # 8 floats, unit length
    """

    def __init__(self, dim: int = 64, lowercase: bool = True, normalize: bool = True):
        if dim <= 0:
            raise ValueError(f"dim must be positive, got {dim}")
        self._dim = int(dim)
        self._lowercase = lowercase
        self._normalize = normalize

    def ndims(self) -> int:
        return self._dim

    def compute_source_embeddings(self, values: Sequence[Optional[str]]) -> np.ndarray:
        matrix = np.zeros((len(values), self._dim), dtype=np.float32)
        for row, text in enumerate(values):
            matrix[row] = self._embed(text)
        return matrix

    def compute_query_embeddings(self, query: str) -> np.ndarray:
        return self._embed(query)

    def config(self) -> Dict[str, Any]:
        return {"dim": self._dim, "lowercase": self._lowercase, "normalize": self._normalize}

    def _tokens(self, text: str) -> List[str]:
        if self._lowercase:
            text = text.lower()
        return _TOKEN_PATTERN.findall(text)

    def _embed(self, text: Optional[str]) -> np.ndarray:
        vector = np.zeros(self._dim, dtype=np.float32)
        for token in self._tokens(text or ""):
            # md5 rather than hash(): stable across processes
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "little") % self._dim
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign

        if self._normalize:
            norm = np.linalg.norm(vector)
            if norm > 0:
                vector /= norm
        return vector
