"""
Config Integration

Helpers for injecting secrets into parsed configuration objects (agent
configs, env mappings). Objects without references are returned untouched
and never initialize the default manager.
"""

from typing import Any, Dict, List, Optional

from .interface import SecretValidationError
from .manager import SecretManager, get_default_secret_manager
from .parser import object_has_references


async def _manager(manager: Optional[SecretManager]) -> SecretManager:
    return manager or await get_default_secret_manager()


async def inject_secrets_into_config(config: Any, manager: Optional[SecretManager] = None) -> Any:
    """Resolve every reference in a parsed config object."""
    if not object_has_references(config):
        return config
    return await (await _manager(manager)).inject_secrets_into_object(config)


async def inject_secrets_into_entry(entry: Dict[str, Any], manager: Optional[SecretManager] = None) -> Dict[str, Any]:
    """Resolve every reference in a single config entry (e.g. one agent)."""
    if not object_has_references(entry):
        return entry
    return await (await _manager(manager)).inject_secrets_into_object(entry)


async def validate_config_secrets(config: Any, manager: Optional[SecretManager] = None) -> List[SecretValidationError]:
    """
    Check that every reference in a config can be resolved.

    Returns:
        Validation errors (empty if all valid)
    """
    if not object_has_references(config):
        return []
    return await (await _manager(manager)).validate_secrets_in_object(config)


def config_has_secrets(config: Any) -> bool:
    return object_has_references(config)


async def inject_secrets_into_env(env: Dict[str, str], manager: Optional[SecretManager] = None) -> Dict[str, str]:
    """Resolve references in an env mapping, e.g. an agent's env block."""
    if not object_has_references(env):
        return env
    return await (await _manager(manager)).inject_secrets_into_object(env)
