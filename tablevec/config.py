"""
Configuration loading.

Registries and table embedding definitions can be described in YAML and
loaded here. Provider API keys come from arguments, the environment, or a
`.env` file.
"""

import functools
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from tablevec.core.exceptions import ConfigError
from tablevec.core.schema import EmbeddingDefinition

logger = logging.getLogger(__name__)


def resolve_openai_api_key(api_key: Optional[str] = None) -> str:
    """Return an OpenAI API key from the argument, the environment or `.env`.

    Raises:
        ConfigError: If no key can be found
    """
    if api_key:
        return api_key
    load_dotenv()
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ConfigError(
            "OpenAI API key required. Pass api_key or set OPENAI_API_KEY env var."
        )
    return api_key


@dataclass
class EmbeddingConfig:
    """Settings shared by a registry and the pipelines built on it.

    Example:
        config = EmbeddingConfig(allow_overwrite=False, timeout_s=30.0)
    """

    # Registry
    allow_overwrite: bool = False

    # Pipeline
    timeout_s: Optional[float] = None  # Per compute call; None waits forever

    # Functions registered by name -> {"provider": ..., "params": {...}}
    embeddings: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "EmbeddingConfig":
        """Build config from a dictionary (e.g. parsed YAML)."""
        registry_config = config_dict.get("registry", {}) or {}
        pipeline_config = config_dict.get("pipeline", {}) or {}
        embeddings = config_dict.get("embeddings", {}) or {}

        if not isinstance(embeddings, dict):
            raise ConfigError("'embeddings' must be a mapping of name -> provider config")

        timeout_s = pipeline_config.get("timeout_s")
        return cls(
            allow_overwrite=bool(registry_config.get("allow_overwrite", False)),
            timeout_s=float(timeout_s) if timeout_s is not None else None,
            embeddings=embeddings,
        )


def create_registry_from_config(config_dict: Dict[str, Any], include_builtins: bool = True):
    """Create an EmbeddingRegistry from a configuration dictionary.

    Args:
        config_dict: Configuration dictionary
        include_builtins: Also register the built-in providers under their
            own names

    Returns:
        EmbeddingRegistry instance

    Example:
        config = {
            "registry": {"allow_overwrite": False},
            "embeddings": {
                "small": {"provider": "openai", "params": {"model": "text-embedding-3-small"}},
                "offline": {"provider": "hashing", "params": {"dim": 128}},
            },
        }
        registry = create_registry_from_config(config)
        func = registry.create("offline")
    """
    from tablevec.embeddings import BUILTIN_PROVIDERS, register_builtins
    from tablevec.embeddings.registry import EmbeddingRegistry

    config = EmbeddingConfig.from_dict(config_dict)
    registry = EmbeddingRegistry(allow_overwrite=config.allow_overwrite)
    if include_builtins:
        register_builtins(registry)

    for name, entry in config.embeddings.items():
        entry = entry or {}
        provider = entry.get("provider")
        if provider not in BUILTIN_PROVIDERS:
            raise ConfigError(
                f"Unknown provider '{provider}' for embedding '{name}'. "
                f"Choose from {list(BUILTIN_PROVIDERS.keys())}"
            )
        params = entry.get("params", {}) or {}
        registry.register(
            name,
            functools.partial(BUILTIN_PROVIDERS[provider], **params),
            allow_overwrite=True if name in BUILTIN_PROVIDERS else None
        )
        logger.info("Configured embedding '%s' (provider=%s)", name, provider)

    return registry


def create_registry_from_yaml(yaml_path: str, include_builtins: bool = True):
    """Create an EmbeddingRegistry from a YAML configuration file.

    Example YAML:
        registry:
          allow_overwrite: false
        embeddings:
          offline:
            provider: hashing
            params:
              dim: 128
    """
    return create_registry_from_config(_read_yaml(yaml_path), include_builtins)


def load_definitions_from_yaml(yaml_path: str) -> Dict[str, List[EmbeddingDefinition]]:
    """Load per-table embedding definitions from a YAML file.

    Example YAML:
        tables:
          articles:
            embeddings:
              - source_column: body
                name: offline
                vector_column: body_vector

    Returns:
        Mapping of table name -> definitions in declaration order
    """
    config = _read_yaml(yaml_path)
    tables = config.get("tables", {}) or {}

    definitions = {}
    for table_name, table_config in tables.items():
        entries = (table_config or {}).get("embeddings", []) or []
        try:
            definitions[table_name] = [EmbeddingDefinition.from_dict(e) for e in entries]
        except ValueError as e:
            raise ConfigError(f"Invalid embedding definition for table '{table_name}': {e}") from e
    return definitions


def _read_yaml(yaml_path: str) -> Dict[str, Any]:
    try:
        with open(yaml_path) as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {yaml_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {yaml_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"Config file {yaml_path} must contain a mapping")
    return config
