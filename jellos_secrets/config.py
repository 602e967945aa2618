"""
Secrets configuration.

Loads the secret manager configuration from a JSON file, falling back to
DEFAULT_CONFIG when no file exists. Import constants from here to avoid
duplicating prefixes across providers.

Configuration file (JELLOS_SECRETS_CONFIG, default .jellos/secrets.json):

    {
        "providers": [
            {"type": "keychain", "priority": 3, "enabled": true},
            {"type": "1password", "priority": 2, "enabled": true,
             "config": {"vault_prefix": "Jellos"}},
            {"type": "env", "priority": 1, "enabled": true}
        ],
        "default_environment": "dev",
        "enable_logging": true,
        "throw_on_missing": false,
        "cache_timeout": 300
    }
"""

import copy
import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .interface import SecretEnvironment, SecretProviderType

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(os.getenv("JELLOS_SECRETS_CONFIG", ".jellos/secrets.json"))

# Naming contracts with the backing stores
KEYCHAIN_SERVICE_PREFIX = "com.jellos.secret"
OP_VAULT_PREFIX = "Jellos"
OP_REFERENCE_SCHEME = "op"
ENV_VAR_PREFIX = "JELLOS_SECRET"

# Access log retention
MAX_ACCESS_LOGS = 1000

DEFAULT_CONFIG: Dict[str, Any] = {
    "providers": [
        {"type": "keychain", "priority": 3, "enabled": True},
        {"type": "1password", "priority": 2, "enabled": True},
        {"type": "env", "priority": 1, "enabled": True},
    ],
    "default_environment": "dev",
    "enable_logging": True,
    "throw_on_missing": False,
    "cache_timeout": 300,  # seconds, 0 = no cache
}


@dataclass
class ProviderConfig:
    """Configuration for one provider."""
    type: SecretProviderType
    priority: int
    enabled: bool = True
    config: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderConfig":
        return cls(
            type=SecretProviderType(data["type"]),
            priority=int(data.get("priority", 0)),
            enabled=bool(data.get("enabled", True)),
            config=dict(data.get("config", {})),
        )


@dataclass
class SecretManagerConfig:
    """Secret manager configuration."""
    providers: List[ProviderConfig] = field(
        default_factory=lambda: [ProviderConfig.from_dict(p) for p in DEFAULT_CONFIG["providers"]]
    )
    default_environment: str = SecretEnvironment.DEVELOPMENT.value
    enable_logging: bool = True
    throw_on_missing: bool = False
    cache_timeout: int = 300

    def __post_init__(self):
        if isinstance(self.default_environment, SecretEnvironment):
            self.default_environment = self.default_environment.value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecretManagerConfig":
        """Build a config from a (partial) dict, merged over DEFAULT_CONFIG."""
        merged = copy.deepcopy(DEFAULT_CONFIG)
        merged.update(data)
        return cls(
            providers=[
                p if isinstance(p, ProviderConfig) else ProviderConfig.from_dict(p)
                for p in merged["providers"]
            ],
            default_environment=merged["default_environment"],
            enable_logging=bool(merged["enable_logging"]),
            throw_on_missing=bool(merged["throw_on_missing"]),
            cache_timeout=int(merged["cache_timeout"] or 0),
        )

    def get_provider_config(self, provider_type: SecretProviderType) -> Optional[ProviderConfig]:
        for provider_config in self.providers:
            if provider_config.type == provider_type:
                return provider_config
        return None

    def priority_of(self, provider_type: SecretProviderType) -> int:
        provider_config = self.get_provider_config(provider_type)
        return provider_config.priority if provider_config else 0


ConfigInput = Union[SecretManagerConfig, Dict[str, Any], None]


def load_config(path: Optional[Path] = None) -> SecretManagerConfig:
    """
    Load manager configuration from file.

    Falls back to DEFAULT_CONFIG when the file is missing or unreadable.
    """
    config_path = path or CONFIG_PATH

    if not config_path.exists():
        logger.info("Using default secrets configuration")
        return SecretManagerConfig.from_dict({})

    try:
        data = json.loads(config_path.read_text())
        config = SecretManagerConfig.from_dict(data)
        logger.info(f"Loaded secrets config from {config_path}")
        return config
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.error(f"❌ Failed to load secrets config from {config_path}: {e}")
        return SecretManagerConfig.from_dict({})


def resolve_config(config: ConfigInput = None) -> SecretManagerConfig:
    """
    Normalize a config argument.

    None loads the config file; a dict is treated as a partial override of
    the defaults; a SecretManagerConfig is used as-is.
    """
    if config is None:
        return load_config()
    if isinstance(config, SecretManagerConfig):
        return config

    known = {f.name for f in fields(SecretManagerConfig)}
    unknown = set(config) - known
    if unknown:
        raise ValueError(f"Unknown secret manager config keys: {', '.join(sorted(unknown))}")
    return SecretManagerConfig.from_dict(config)
