"""
Secret Manager

Orchestrates the configured providers with priority-based resolution,
caching and an access log.

Usage:
    from jellos_secrets import get_default_secret_manager

    manager = await get_default_secret_manager()

    # Resolve a secret (namespace defaults to the configured environment)
    result = await manager.get_secret("GITHUB_TOKEN", "prod")

    # Substitute ${secret:...} references
    text = await manager.inject_secrets("TOKEN=${secret:prod/GITHUB_TOKEN}")
"""

import asyncio
import logging
from collections import deque
from datetime import timedelta
from typing import Any, Deque, Dict, List, Optional, Sequence

from .backends import BACKENDS
from .config import MAX_ACCESS_LOGS, ConfigInput, resolve_config
from .errors import (
    ProviderError,
    SecretNotFoundError,
    SecretResolutionError,
)
from .interface import (
    CachedSecretValue,
    ProviderHealthCheck,
    ProviderHealthStatus,
    SecretAccessLog,
    SecretProvider,
    SecretProviderType,
    SecretReference,
    SecretResolutionResult,
    SecretValidationError,
    utcnow,
)
from .parser import (
    find_references,
    replace_references,
    replace_references_in_object,
)

logger = logging.getLogger(__name__)


class SecretManager:
    """
    Resolves secrets against the available providers in priority order.

    Providers are discovered once in initialize(); a provider that fails
    later is still tried on every lookup and its failure is logged.
    """

    def __init__(
        self,
        config: ConfigInput = None,
        providers: Optional[Sequence[SecretProvider]] = None,
    ):
        """
        Args:
            config: SecretManagerConfig, partial config dict, or None to load
                    the config file
            providers: Provider instances to use instead of the registry
                       (construction order is kept for priority ties)
        """
        self.config = resolve_config(config)
        self._candidates = list(providers) if providers is not None else None
        self._providers: List[SecretProvider] = []
        self._cache: Dict[str, CachedSecretValue] = {}
        self._access_logs: Deque[SecretAccessLog] = deque(maxlen=MAX_ACCESS_LOGS)
        self._initialized = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def _is_enabled(self, provider_type: SecretProviderType) -> bool:
        provider_config = self.config.get_provider_config(provider_type)
        return provider_config is not None and provider_config.enabled

    def _build_providers(self) -> List[SecretProvider]:
        """Create instances for every enabled provider in the registry."""
        providers = []
        for adapter_type, provider_class in BACKENDS.items():
            provider_type = SecretProviderType(adapter_type)
            if not self._is_enabled(provider_type):
                continue
            providers.append(provider_class(self.config.get_provider_config(provider_type).config))
        return providers

    async def initialize(self) -> None:
        """Discover available providers and sort them by priority."""
        if self._candidates is not None:
            candidates = [p for p in self._candidates if self._is_enabled(p.provider_type)]
        else:
            candidates = self._build_providers()

        results = await asyncio.gather(
            *(provider.is_available() for provider in candidates),
            return_exceptions=True,
        )

        available = []
        for provider, result in zip(candidates, results):
            if isinstance(result, BaseException):
                logger.warning(f"⚠️ Availability check for {provider.name} failed: {result}")
            elif result:
                available.append(provider)
            else:
                logger.warning(f"⚠️ Provider {provider.name} is not available")

        # sorted() is stable, so ties keep construction order
        self._providers = sorted(
            available,
            key=lambda p: self.config.priority_of(p.provider_type),
            reverse=True,
        )
        self._initialized = True

        names = ", ".join(p.name for p in self._providers) or "none"
        logger.info(f"✅ Secret manager initialized with providers: {names}")

    @property
    def initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def _cache_enabled(self) -> bool:
        return self.config.cache_timeout > 0

    def _get_cached(self, cache_key: str) -> Optional[CachedSecretValue]:
        cached = self._cache.get(cache_key)
        if cached is None:
            return None

        age = utcnow() - cached.retrieved_at
        if age < timedelta(seconds=self.config.cache_timeout):
            return cached

        del self._cache[cache_key]
        return None

    async def get_secret(self, key: str, namespace: Optional[str] = None) -> SecretResolutionResult:
        """
        Get a secret, trying providers in priority order.

        Args:
            key: Secret key
            namespace: Namespace (default: configured default environment)

        Returns:
            SecretResolutionResult

        Raises:
            SecretNotFoundError: If no provider has it and throw_on_missing is set
        """
        effective_namespace = namespace or self.config.default_environment
        cache_key = f"{effective_namespace}/{key}"

        if self._cache_enabled():
            cached = self._get_cached(cache_key)
            if cached is not None:
                return SecretResolutionResult(resolved=True, value=cached.value, provider=cached.source)

        for provider in self._providers:
            try:
                value = await provider.get_secret(key, effective_namespace)
            except Exception as e:
                logger.error(f"❌ Error retrieving {cache_key} from {provider.name}: {e}")
                self._log_access(key, effective_namespace, provider.provider_type, False, str(e))
                continue

            if value is None:
                continue

            self._log_access(key, effective_namespace, provider.provider_type, True)

            if self._cache_enabled():
                self._cache[cache_key] = CachedSecretValue(
                    value=value,
                    source=provider.provider_type,
                    namespace=effective_namespace,
                )

            return SecretResolutionResult(resolved=True, value=value, provider=provider.provider_type)

        error_message = f"Secret not found: {cache_key}"
        self._log_access(key, effective_namespace, None, False, error_message)

        if self.config.throw_on_missing:
            raise SecretNotFoundError(key, effective_namespace, error_message)

        return SecretResolutionResult(resolved=False, error=error_message)

    async def resolve_reference(self, ref: SecretReference, namespace: Optional[str] = None) -> str:
        """
        Resolve a parsed reference to its value.

        Args:
            ref: Parsed reference
            namespace: Namespace used when the reference has none

        Returns:
            The value, or the raw token unchanged when unresolved

        Raises:
            SecretResolutionError: If unresolved and throw_on_missing is set
        """
        try:
            result = await self.get_secret(ref.key, ref.namespace or namespace)
        except SecretNotFoundError as e:
            raise SecretResolutionError(ref.raw, str(e)) from e

        if not result.resolved or result.value is None:
            if self.config.throw_on_missing:
                raise SecretResolutionError(ref.raw, result.error or "not found")
            return ref.raw

        return result.value

    async def inject_secrets(self, text: str, namespace: Optional[str] = None) -> str:
        """Replace all secret references in a string."""
        return await replace_references(text, lambda ref: self.resolve_reference(ref, namespace))

    async def inject_secrets_into_object(self, obj: Any, namespace: Optional[str] = None) -> Any:
        """Replace all secret references in a nested structure (deep)."""
        return await replace_references_in_object(obj, lambda ref: self.resolve_reference(ref, namespace))

    # =========================================================================
    # VALIDATION
    # =========================================================================

    async def _check_reference(self, ref: SecretReference) -> Optional[SecretValidationError]:
        namespace = ref.namespace or self.config.default_environment
        try:
            result = await self.get_secret(ref.key, ref.namespace)
        except SecretNotFoundError as e:
            message = str(e)
        else:
            if result.resolved:
                return None
            message = result.error or "Secret not found"

        return SecretValidationError(reference=ref.raw, key=ref.key, namespace=namespace, message=message)

    async def validate_secrets(self, text: str) -> List[SecretValidationError]:
        """
        Check that every reference in text can be resolved.

        Returns:
            One error per unresolved reference (empty if all valid)
        """
        references = find_references(text)
        results = await asyncio.gather(*(self._check_reference(ref) for ref in references))
        return [error for error in results if error is not None]

    async def validate_secrets_in_object(self, obj: Any) -> List[SecretValidationError]:
        """
        Validate secrets in a nested structure (deep).

        Each error's reference is prefixed with the dotted path of the value,
        e.g. "database.password: ${secret:DB_PASSWORD}".
        """
        errors: List[SecretValidationError] = []

        async def validate_value(value: Any, path: str) -> None:
            if isinstance(value, str):
                for error in await self.validate_secrets(value):
                    error.reference = f"{path}: {error.reference}" if path else error.reference
                    errors.append(error)
            elif isinstance(value, dict):
                for key, sub_value in value.items():
                    await validate_value(sub_value, f"{path}.{key}" if path else str(key))
            elif isinstance(value, (list, tuple)):
                for index, item in enumerate(value):
                    await validate_value(item, f"{path}[{index}]")

        await validate_value(obj, "")
        return errors

    # =========================================================================
    # WRITES
    # =========================================================================

    def _select_provider(self, capability: str, provider_type: Optional[SecretProviderType]) -> SecretProvider:
        for provider in self._providers:
            if provider_type is not None and provider.provider_type != SecretProviderType(provider_type):
                continue
            if getattr(provider, capability):
                return provider

        target = SecretProviderType(provider_type).value if provider_type else "any available provider"
        raise ProviderError(f"No provider supports {capability.replace('supports_', '')} ({target})")

    async def set_secret(
        self,
        key: str,
        value: str,
        namespace: Optional[str] = None,
        provider_type: Optional[SecretProviderType] = None,
    ) -> SecretProviderType:
        """
        Store a secret in the given provider, or the highest-priority
        provider that supports writes.

        Returns:
            The provider type the secret was written to
        """
        effective_namespace = namespace or self.config.default_environment
        provider = self._select_provider("supports_write", provider_type)

        await provider.set_secret(key, value, effective_namespace)
        self._cache.pop(f"{effective_namespace}/{key}", None)
        return provider.provider_type

    async def list_secrets(
        self,
        namespace: Optional[str] = None,
        provider_type: Optional[SecretProviderType] = None,
    ) -> List[str]:
        provider = self._select_provider("supports_list", provider_type)
        return await provider.list_secrets(namespace or self.config.default_environment)

    async def delete_secret(
        self,
        key: str,
        namespace: Optional[str] = None,
        provider_type: Optional[SecretProviderType] = None,
    ) -> bool:
        effective_namespace = namespace or self.config.default_environment
        provider = self._select_provider("supports_delete", provider_type)

        deleted = await provider.delete_secret(key, effective_namespace)
        self._cache.pop(f"{effective_namespace}/{key}", None)
        return deleted

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    async def get_providers_health(self) -> Dict[SecretProviderType, ProviderHealthCheck]:
        """Health status for every available provider, probed concurrently."""
        results = await asyncio.gather(
            *(provider.get_health_status() for provider in self._providers),
            return_exceptions=True,
        )

        health: Dict[SecretProviderType, ProviderHealthCheck] = {}
        for provider, result in zip(self._providers, results):
            if isinstance(result, BaseException):
                health[provider.provider_type] = ProviderHealthCheck(
                    status=ProviderHealthStatus.UNAVAILABLE,
                    error=str(result) or "Health check failed",
                )
            else:
                health[provider.provider_type] = result
        return health

    def get_providers(self) -> List[SecretProvider]:
        return list(self._providers)

    def get_access_logs(self) -> List[SecretAccessLog]:
        return list(self._access_logs)

    def clear_access_logs(self) -> None:
        self._access_logs.clear()

    def clear_cache(self) -> None:
        self._cache.clear()

    def _log_access(
        self,
        key: str,
        namespace: str,
        provider: Optional[SecretProviderType],
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        if self.config.enable_logging:
            self._access_logs.append(SecretAccessLog(
                key=key,
                namespace=namespace,
                provider=provider,
                success=success,
                error=error,
            ))


async def create_secret_manager(
    config: ConfigInput = None,
    providers: Optional[Sequence[SecretProvider]] = None,
) -> SecretManager:
    """Create and initialize a secret manager."""
    manager = SecretManager(config, providers=providers)
    await manager.initialize()
    return manager


# Process-wide default instance
_default_manager: Optional[SecretManager] = None


async def get_default_secret_manager() -> SecretManager:
    """Get or create the default secret manager."""
    global _default_manager
    if _default_manager is None:
        _default_manager = await create_secret_manager()
    return _default_manager


def reset_default_secret_manager() -> None:
    """Drop the default manager along with its cache and access log."""
    global _default_manager
    _default_manager = None
