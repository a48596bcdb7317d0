"""
Embedding functions and the registry that names them.

The OpenAI and sentence-transformers providers are imported lazily so the
package works without their optional dependencies being importable.
"""

from tablevec.embeddings.base import EmbeddingFunction
from tablevec.embeddings.hashing import HashingEmbeddings
from tablevec.embeddings.registry import EmbeddingRegistry, EmbeddingFunctionHandle


def _openai(**params):
    from tablevec.embeddings.openai import OpenAIEmbeddings
    return OpenAIEmbeddings(**params)


def _sentence_transformers(**params):
    from tablevec.embeddings.sentence_transformers import SentenceTransformerEmbeddings
    return SentenceTransformerEmbeddings(**params)


BUILTIN_PROVIDERS = {
    "hashing": HashingEmbeddings,
    "openai": _openai,
    "sentence-transformers": _sentence_transformers,
}


def register_builtins(registry: EmbeddingRegistry) -> EmbeddingRegistry:
    """Register every built-in provider under its own name."""
    for name, factory in BUILTIN_PROVIDERS.items():
        registry.register(name, factory)
    return registry


__all__ = [
    "EmbeddingFunction",
    "EmbeddingRegistry",
    "EmbeddingFunctionHandle",
    "HashingEmbeddings",
    "BUILTIN_PROVIDERS",
    "register_builtins",
]
