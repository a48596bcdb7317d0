"""
Unit tests for the embedding function registry.
"""

import threading

import pytest

from tablevec.core.exceptions import DuplicateNameError, NotFoundError, RegistryError
from tablevec.embeddings import (
    BUILTIN_PROVIDERS,
    EmbeddingFunction,
    EmbeddingRegistry,
    HashingEmbeddings,
)


class TestRegistration:
    """Tests for register / get / create."""

    def test_register_instance_and_create(self, stub):
        """Test a registered instance is returned by create()."""
        registry = EmbeddingRegistry()
        registry.register("stub-embedder", stub)

        handle = registry.get("stub-embedder")
        assert handle is not None
        assert handle.create() is stub
        assert registry.create("stub-embedder") is stub

    def test_register_class_and_create_with_params(self):
        """Test a registered class is constructed with params on create()."""
        registry = EmbeddingRegistry()
        registry.register("hashing", HashingEmbeddings)

        func = registry.create("hashing", dim=16)
        assert isinstance(func, HashingEmbeddings)
        assert func.ndims() == 16
        assert func.name == "hashing"

    def test_created_function_behaves_like_registered(self, stub_cls):
        """Test create() yields a function equal in behaviour to the registered one."""
        original = stub_cls(dim=4)
        registry = EmbeddingRegistry()
        registry.register("stub", stub_cls)

        created = registry.create("stub", dim=4)
        assert created == original
        assert created.compute_query_embeddings("abc") == original.compute_query_embeddings("abc")

    def test_register_factory_callable(self):
        """Test a plain factory function can be registered."""
        registry = EmbeddingRegistry()
        registry.register("small-hash", lambda **kw: HashingEmbeddings(dim=8, **kw))

        assert registry.create("small-hash").ndims() == 8

    def test_get_does_not_construct(self):
        """Test lookups never call the factory."""
        calls = []

        def factory():
            calls.append(1)
            return HashingEmbeddings()

        registry = EmbeddingRegistry()
        registry.register("h", factory)

        registry.get("h")
        assert calls == []

        registry.create("h")
        assert calls == [1]

    def test_create_reuses_instance_per_params(self, stub_cls):
        """Test factories run once per parameter set."""
        constructed = []

        class Counting(stub_cls):
            def __init__(self, **kwargs):
                constructed.append(kwargs)
                super().__init__(**kwargs)

        registry = EmbeddingRegistry()
        registry.register("counting", Counting)

        first = registry.create("counting", dim=4)
        second = registry.create("counting", dim=4)
        other = registry.create("counting", dim=8)

        assert first is second
        assert other is not first
        assert constructed == [{"dim": 4}, {"dim": 8}]

    def test_reregistration_drops_reused_instance(self, stub_cls):
        """Test replacing a registration builds a fresh instance."""
        registry = EmbeddingRegistry()
        registry.register("stub", stub_cls)
        before = registry.create("stub")

        registry.register("stub", stub_cls, allow_overwrite=True)

        assert registry.create("stub") is not before

    def test_get_missing_returns_none(self):
        """Test get() of an unknown name."""
        assert EmbeddingRegistry().get("missing") is None

    def test_create_missing_raises(self):
        """Test create() of an unknown name."""
        registry = EmbeddingRegistry()
        registry.register("hashing", HashingEmbeddings)

        with pytest.raises(NotFoundError) as exc_info:
            registry.create("missing")

        assert exc_info.value.name == "missing"
        assert exc_info.value.available == ["hashing"]
        assert isinstance(exc_info.value, RegistryError)
        assert isinstance(exc_info.value, KeyError)
        assert "missing" in str(exc_info.value)

    def test_names_are_case_sensitive_and_verbatim(self):
        """Test names are not normalised."""
        registry = EmbeddingRegistry()
        registry.register("Hashing", HashingEmbeddings)

        assert registry.get("hashing") is None
        assert registry.get(" Hashing") is None
        assert "Hashing" in registry

    def test_instance_rejects_params(self, stub):
        """Test params cannot be applied to a pre-built instance."""
        registry = EmbeddingRegistry()
        registry.register("stub", stub)

        with pytest.raises(TypeError):
            registry.create("stub", dim=8)

    def test_factory_must_return_embedding_function(self):
        """Test factories returning other objects are rejected on create()."""
        registry = EmbeddingRegistry()
        registry.register("bad", lambda: object())

        with pytest.raises(TypeError):
            registry.create("bad")

    def test_register_rejects_non_functions(self):
        """Test registering unsupported objects."""
        registry = EmbeddingRegistry()

        with pytest.raises(TypeError):
            registry.register("dict", dict)
        with pytest.raises(TypeError):
            registry.register("number", 42)
        with pytest.raises(TypeError):
            registry.register("", HashingEmbeddings)

    def test_register_as_decorator(self):
        """Test @registry.register(name) on a class."""
        registry = EmbeddingRegistry()

        @registry.register("constant")
        class ConstantEmbeddings(EmbeddingFunction):
            def ndims(self):
                return 2

            def compute_source_embeddings(self, values):
                return [[1.0, 0.0] for _ in values]

            def compute_query_embeddings(self, query):
                return [1.0, 0.0]

        assert isinstance(registry.create("constant"), ConstantEmbeddings)

    def test_unregister_and_list(self):
        """Test removing names and listing in registration order."""
        registry = EmbeddingRegistry()
        registry.register("b", HashingEmbeddings)
        registry.register("a", HashingEmbeddings)

        assert registry.list_functions() == ["b", "a"]
        assert len(registry) == 2

        assert registry.unregister("b") is True
        assert registry.unregister("b") is False
        assert registry.list_functions() == ["a"]


class TestOverwritePolicy:
    """Tests for duplicate registrations."""

    def test_duplicate_name_fails_by_default(self, stub):
        """Test re-registering a name without overwrite."""
        registry = EmbeddingRegistry()
        registry.register("stub", stub)

        with pytest.raises(DuplicateNameError) as exc_info:
            registry.register("stub", HashingEmbeddings)

        assert exc_info.value.name == "stub"
        assert registry.create("stub") is stub

    def test_overwrite_per_call(self, stub):
        """Test allow_overwrite on a single call."""
        registry = EmbeddingRegistry()
        registry.register("stub", stub)
        registry.register("stub", HashingEmbeddings, allow_overwrite=True)

        assert isinstance(registry.create("stub"), HashingEmbeddings)

    def test_overwrite_registry_wide(self, stub):
        """Test registry-wide overwrite policy and per-call override."""
        registry = EmbeddingRegistry(allow_overwrite=True)
        registry.register("stub", stub)
        registry.register("stub", HashingEmbeddings)

        assert isinstance(registry.create("stub"), HashingEmbeddings)

        with pytest.raises(DuplicateNameError):
            registry.register("stub", stub, allow_overwrite=False)

    def test_concurrent_registration_has_single_winner(self):
        """Test racing registrations of one name: exactly one succeeds."""
        registry = EmbeddingRegistry()
        barrier = threading.Barrier(8)
        outcomes = []
        lock = threading.Lock()

        def worker(i):
            barrier.wait()
            try:
                registry.register("shared", HashingEmbeddings(dim=i + 1))
                result = "ok"
            except DuplicateNameError:
                result = "duplicate"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("duplicate") == 7
        assert len(registry) == 1


class TestBuiltins:
    """Tests for the built-in provider set."""

    def test_with_builtins(self):
        """Test built-in providers are registered under their names."""
        registry = EmbeddingRegistry.with_builtins()

        assert registry.list_functions() == list(BUILTIN_PROVIDERS)
        assert isinstance(registry.create("hashing", dim=8), HashingEmbeddings)

    def test_registries_are_isolated(self):
        """Test two registries do not share registrations."""
        first = EmbeddingRegistry.with_builtins()
        second = EmbeddingRegistry.with_builtins()
        first.register("extra", HashingEmbeddings)

        assert "extra" in first
        assert "extra" not in second
