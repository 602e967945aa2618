"""
Environment Variable Secret Provider

Fallback provider reading JELLOS_SECRET_<NAMESPACE>_<KEY> from os.environ.
Writes only affect the current process.
"""

import logging
import os
import re
from typing import List, Optional

from ..config import ENV_VAR_PREFIX
from ..interface import (
    ProviderHealthCheck,
    ProviderHealthStatus,
    SecretProvider,
    SecretProviderType,
)

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def normalize_env_segment(value: str) -> str:
    return _NON_ALNUM.sub("_", value.upper())


class EnvProvider(SecretProvider):
    """Environment variable provider. Always available, lowest priority by default."""

    provider_type = SecretProviderType.ENV
    name = "Environment Variables"

    supports_write = True
    supports_list = True
    supports_delete = True

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        self.prefix = self.config.get("prefix", ENV_VAR_PREFIX)

    async def is_available(self) -> bool:
        return True

    async def get_health_status(self) -> ProviderHealthCheck:
        return ProviderHealthCheck(
            status=ProviderHealthStatus.HEALTHY,
            available=True,
            cli_installed=True,  # N/A
            latency=0,
        )

    async def get_secret(self, key: str, namespace: str) -> Optional[str]:
        # Empty values count as absent
        return os.environ.get(self.build_env_var_name(key, namespace)) or None

    async def set_secret(self, key: str, value: str, namespace: str) -> None:
        name = self.build_env_var_name(key, namespace)
        os.environ[name] = value
        logger.warning(f"⚠️ Set {name} in process environment (not persistent - current process only)")

    async def list_secrets(self, namespace: str) -> List[str]:
        prefix = self.build_env_var_prefix(namespace)
        return [name[len(prefix):] for name in os.environ if name.startswith(prefix)]

    async def delete_secret(self, key: str, namespace: str) -> bool:
        return os.environ.pop(self.build_env_var_name(key, namespace), None) is not None

    def build_env_var_name(self, key: str, namespace: str) -> str:
        """
        Format: <PREFIX>_<NAMESPACE>_<KEY>

        Example: JELLOS_SECRET_PROD_API_KEY
        """
        return f"{self.build_env_var_prefix(namespace)}{normalize_env_segment(key)}"

    def build_env_var_prefix(self, namespace: str) -> str:
        return f"{self.prefix}_{normalize_env_segment(namespace)}_"
