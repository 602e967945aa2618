"""
Secrets Provider Interface

Defines the abstract interface for secret providers and the records
exchanged between providers, the manager and the env loader.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class SecretProviderType(str, Enum):
    """Supported secret provider types."""
    KEYCHAIN = "keychain"        # macOS Keychain
    ONE_PASSWORD = "1password"   # 1Password CLI
    ENV = "env"                  # Environment variables (fallback)


class SecretEnvironment(str, Enum):
    """Environment-based secret namespaces."""
    DEVELOPMENT = "dev"
    STAGING = "staging"
    PRODUCTION = "prod"
    TEST = "test"


class ProviderHealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SecretReference:
    """
    A parsed ${secret:...} token.

    raw is the exact matched token including the ${secret:...} wrapper,
    used for substring replacement.
    """
    key: str
    raw: str
    namespace: Optional[str] = None


@dataclass
class CachedSecretValue:
    """A resolved secret held in the manager cache."""
    value: str
    source: SecretProviderType
    namespace: str
    retrieved_at: datetime = field(default_factory=utcnow)


@dataclass
class SecretAccessLog:
    """Audit entry for one secret access attempt."""
    key: str
    namespace: str
    provider: Optional[SecretProviderType]  # None when every provider was exhausted
    success: bool
    accessed_at: datetime = field(default_factory=utcnow)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "namespace": self.namespace,
            "provider": self.provider.value if self.provider else None,
            "accessed_at": self.accessed_at.isoformat(),
            "success": self.success,
            "error": self.error,
        }


@dataclass
class ProviderHealthCheck:
    """Health snapshot of a provider. Computed on demand, never cached."""
    status: ProviderHealthStatus = ProviderHealthStatus.UNAVAILABLE
    available: bool = False
    cli_installed: bool = False
    authenticated: Optional[bool] = None
    version: Optional[str] = None
    latency: Optional[float] = None  # milliseconds
    last_checked: datetime = field(default_factory=utcnow)
    error: Optional[str] = None
    help_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "available": self.available,
            "cli_installed": self.cli_installed,
            "authenticated": self.authenticated,
            "version": self.version,
            "latency": self.latency,
            "last_checked": self.last_checked.isoformat(),
            "error": self.error,
            "help_text": self.help_text,
        }


@dataclass
class SecretResolutionResult:
    resolved: bool
    value: Optional[str] = None
    provider: Optional[SecretProviderType] = None
    error: Optional[str] = None


@dataclass
class SecretValidationError:
    """One unresolvable reference found during a validation pass."""
    reference: str
    key: str
    namespace: str
    message: str


class SecretProvider(ABC):
    """
    Abstract base class for secret providers.

    Implementations give access to one backing credential store
    (macOS Keychain, 1Password, process environment, ...).

    is_available, get_health_status and get_secret are mandatory.
    Writing, listing and deleting are optional capabilities; a provider
    advertises them through the supports_* markers and the manager only
    routes those calls to providers that set them.
    """

    provider_type: SecretProviderType
    name: str = "base"

    supports_write: bool = False
    supports_list: bool = False
    supports_delete: bool = False

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize the provider.

        Args:
            config: Provider-specific configuration dict
        """
        self.config = config or {}

    @abstractmethod
    async def is_available(self) -> bool:
        """Check whether the provider can be used on this host."""
        pass

    @abstractmethod
    async def get_health_status(self) -> ProviderHealthCheck:
        """
        Get a fresh health snapshot.

        Includes availability, authentication, tool version and latency,
        plus a remediation hint for every failure mode.
        """
        pass

    @abstractmethod
    async def get_secret(self, key: str, namespace: str) -> Optional[str]:
        """
        Retrieve a secret value.

        Args:
            key: Secret key
            namespace: Namespace (environment) to look in

        Returns:
            The secret value, or None if this provider does not have it

        Raises:
            ProviderError: If the provider itself failed (locked, signed out, ...)
        """
        pass

    async def set_secret(self, key: str, value: str, namespace: str) -> None:
        """Store a secret value."""
        raise NotImplementedError(f"{self.name} does not support storing secrets")

    async def list_secrets(self, namespace: str) -> List[str]:
        """List secret keys in a namespace."""
        raise NotImplementedError(f"{self.name} does not support listing secrets")

    async def delete_secret(self, key: str, namespace: str) -> bool:
        """
        Delete a secret.

        Returns:
            True if deleted, False if not found
        """
        raise NotImplementedError(f"{self.name} does not support deleting secrets")
