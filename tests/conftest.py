"""Shared fixtures: in-memory providers and process-wide state resets."""

import logging
from typing import Dict, List, Optional

import pytest

from jellos_secrets.interface import (
    ProviderHealthCheck,
    ProviderHealthStatus,
    SecretProvider,
    SecretProviderType,
)
from jellos_secrets.manager import SecretManager, reset_default_secret_manager
from jellos_secrets.masking import reset_default_masker, restore_logging


class FakeProvider(SecretProvider):
    """In-memory provider keyed by (namespace, key)."""

    supports_write = True
    supports_list = True
    supports_delete = True

    def __init__(
        self,
        provider_type: SecretProviderType,
        secrets: Optional[Dict[str, str]] = None,
        available: bool = True,
        error: Optional[Exception] = None,
    ):
        super().__init__()
        self.provider_type = provider_type
        self.name = f"Fake {provider_type.value}"
        self.available = available
        self.error = error
        self.calls: List[str] = []
        # "namespace/key" -> value
        self.secrets: Dict[str, str] = dict(secrets or {})

    async def is_available(self) -> bool:
        return self.available

    async def get_health_status(self) -> ProviderHealthCheck:
        if self.error:
            raise self.error
        return ProviderHealthCheck(
            status=ProviderHealthStatus.HEALTHY,
            available=True,
            cli_installed=True,
            latency=1.0,
        )

    async def get_secret(self, key: str, namespace: str) -> Optional[str]:
        self.calls.append(f"{namespace}/{key}")
        if self.error:
            raise self.error
        return self.secrets.get(f"{namespace}/{key}")

    async def set_secret(self, key: str, value: str, namespace: str) -> None:
        self.secrets[f"{namespace}/{key}"] = value

    async def list_secrets(self, namespace: str) -> List[str]:
        prefix = f"{namespace}/"
        return [name[len(prefix):] for name in self.secrets if name.startswith(prefix)]

    async def delete_secret(self, key: str, namespace: str) -> bool:
        return self.secrets.pop(f"{namespace}/{key}", None) is not None


class ReadOnlyProvider(FakeProvider):
    supports_write = False
    supports_list = False
    supports_delete = False


@pytest.fixture(autouse=True)
def reset_secret_state():
    yield
    reset_default_secret_manager()
    reset_default_masker()
    restore_logging()


@pytest.fixture
def env_provider():
    return FakeProvider(SecretProviderType.ENV)


@pytest.fixture
def keychain_provider():
    return FakeProvider(SecretProviderType.KEYCHAIN)


@pytest.fixture
def op_provider():
    return FakeProvider(SecretProviderType.ONE_PASSWORD)


@pytest.fixture
def make_manager():
    """Build an initialized manager over fake providers; keyword args override the defaults."""

    async def _make(*fakes, **overrides) -> SecretManager:
        manager = SecretManager(overrides, providers=fakes)
        await manager.initialize()
        return manager

    return _make


@pytest.fixture
def masked_handler():
    """A root-logger handler capturing formatted output."""

    class ListHandler(logging.Handler):
        def __init__(self):
            super().__init__()
            self.lines: List[str] = []

        def emit(self, record):
            self.lines.append(self.format(record))

    handler = ListHandler()
    root = logging.getLogger()
    root.addHandler(handler)
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    yield handler
    root.removeHandler(handler)
    root.setLevel(previous_level)
