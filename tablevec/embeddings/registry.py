"""
Embedding function registry.

Maps plain string names to factories that build configured
EmbeddingFunction instances. A registry is an ordinary object with an
explicit lifecycle; connections share one by reference.
"""

import inspect
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Union

from tablevec.core.exceptions import DuplicateNameError, NotFoundError
from tablevec.embeddings.base import EmbeddingFunction

logger = logging.getLogger(__name__)

Factory = Callable[..., EmbeddingFunction]


class EmbeddingFunctionHandle:
    """Registered entry returned by `EmbeddingRegistry.get`.

    Looking a name up never constructs anything; call `create()` on the
    handle to build an instance. Instances are memoised per parameter set,
    so a provider's client or model is built once per handle. Re-registering
    the name replaces the handle and with it the memoised instances.
    """

    def __init__(self, name: str, factory: Factory, instance: Optional[EmbeddingFunction] = None):
        self.name = name
        self._factory = factory
        self._instance = instance
        self._created: Dict[str, EmbeddingFunction] = {}
        self._create_lock = threading.Lock()

    def create(self, **params) -> EmbeddingFunction:
        """Build (or reuse) a configured function.

        Args:
            **params: Construction parameters for the factory

        Returns:
            EmbeddingFunction instance, shared by every caller passing the
            same params

        Raises:
            TypeError: If params are passed for a pre-built instance, or the
                factory does not return an EmbeddingFunction
        """
        if self._instance is not None:
            if params:
                raise TypeError(
                    f"Embedding function '{self.name}' was registered as an instance "
                    f"and takes no construction parameters (got {sorted(params)})"
                )
            return self._instance

        key = json.dumps(params, sort_keys=True, default=str)
        with self._create_lock:
            function = self._created.get(key)
            if function is None:
                function = self._build(params)
                self._created[key] = function
        return function

    def _build(self, params: Dict[str, Any]) -> EmbeddingFunction:
        function = self._factory(**params)
        if not isinstance(function, EmbeddingFunction):
            raise TypeError(
                f"Factory for '{self.name}' returned {type(function).__name__}, "
                f"expected an EmbeddingFunction"
            )
        if function.name is None:
            function.name = self.name
        logger.debug("Constructed embedding function '%s' with %s", self.name, params)
        return function

    def __repr__(self) -> str:
        kind = "instance" if self._instance is not None else "factory"
        return f"EmbeddingFunctionHandle(name='{self.name}', {kind})"


class EmbeddingRegistry:
    """Thread-safe catalog of embedding functions.

    Only the name map is locked; building and running functions happen
    outside the lock.

    Example:
        registry = EmbeddingRegistry()
        registry.register("hashing", HashingEmbeddings)

        handle = registry.get("hashing")
        func = registry.create("hashing", dim=32)

        @registry.register("mine")
        class MyEmbeddings(EmbeddingFunction):
            ...
    """

    def __init__(self, allow_overwrite: bool = False):
        """Create an empty registry.

        Args:
            allow_overwrite: Default policy when a name is registered twice
        """
        self._allow_overwrite = allow_overwrite
        self._entries: Dict[str, EmbeddingFunctionHandle] = {}
        self._lock = threading.RLock()

    @classmethod
    def with_builtins(cls, allow_overwrite: bool = False) -> "EmbeddingRegistry":
        """Create a registry pre-populated with the built-in providers."""
        from tablevec.embeddings import register_builtins

        registry = cls(allow_overwrite=allow_overwrite)
        register_builtins(registry)
        return registry

    def register(
        self,
        name: str,
        function_or_factory: Union[EmbeddingFunction, Factory, None] = None,
        allow_overwrite: Optional[bool] = None
    ):
        """Register a function instance, an EmbeddingFunction subclass or a factory.

        Args:
            name: Registry key (case-sensitive, used verbatim)
            function_or_factory: What to register. When omitted, returns a
                class decorator.
            allow_overwrite: Override the registry-wide overwrite policy

        Returns:
            None, or a decorator when used as `@registry.register(name)`

        Raises:
            DuplicateNameError: If the name exists and overwrite is not allowed
            TypeError: If the object cannot produce EmbeddingFunctions
        """
        if function_or_factory is None:
            def decorator(target):
                self.register(name, target, allow_overwrite=allow_overwrite)
                return target
            return decorator

        if not isinstance(name, str) or not name:
            raise TypeError(f"Registry name must be a non-empty string, got {name!r}")

        handle = self._make_handle(name, function_or_factory)
        overwrite = self._allow_overwrite if allow_overwrite is None else allow_overwrite

        with self._lock:
            exists = name in self._entries
            if exists and not overwrite:
                raise DuplicateNameError(name)
            self._entries[name] = handle

        if exists:
            logger.warning("Overwrote embedding function '%s'", name)
        else:
            logger.info("Registered embedding function '%s'", name)
        return None

    def unregister(self, name: str) -> bool:
        """Remove a name. Returns True if it was registered."""
        with self._lock:
            removed = self._entries.pop(name, None) is not None
        if removed:
            logger.info("Unregistered embedding function '%s'", name)
        return removed

    def get(self, name: str) -> Optional[EmbeddingFunctionHandle]:
        """Look a name up without constructing anything."""
        with self._lock:
            handle = self._entries.get(name)
        logger.debug("Lookup of embedding function '%s': %s", name, "hit" if handle else "miss")
        return handle

    def create(self, name: str, **params) -> EmbeddingFunction:
        """Build a configured function by name.

        Args:
            name: Registry key
            **params: Construction parameters

        Returns:
            EmbeddingFunction instance

        Raises:
            NotFoundError: If the name is not registered
        """
        handle = self.get(name)
        if handle is None:
            raise NotFoundError(name, available=self.list_functions())
        return handle.create(**params)

    def list_functions(self) -> List[str]:
        """Registered names in registration order."""
        with self._lock:
            return list(self._entries)

    @property
    def allow_overwrite(self) -> bool:
        return self._allow_overwrite

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"EmbeddingRegistry(functions={self.list_functions()})"

    @staticmethod
    def _make_handle(name: str, target: Any) -> EmbeddingFunctionHandle:
        if isinstance(target, EmbeddingFunction):
            if target.name is None:
                target.name = name
            return EmbeddingFunctionHandle(name, factory=lambda: target, instance=target)
        if inspect.isclass(target):
            if not issubclass(target, EmbeddingFunction):
                raise TypeError(
                    f"Cannot register {target.__name__} as '{name}': "
                    f"not an EmbeddingFunction subclass"
                )
            return EmbeddingFunctionHandle(name, factory=target)
        if callable(target):
            return EmbeddingFunctionHandle(name, factory=target)
        raise TypeError(
            f"Cannot register {type(target).__name__} as '{name}': "
            f"expected an EmbeddingFunction, a subclass or a factory callable"
        )
