"""
Jellos Secrets

Resolves ${secret:NAMESPACE/KEY} references against the macOS Keychain,
1Password and environment variables, and masks resolved values in logs.

Usage:
    from jellos_secrets import get_default_secret_manager

    manager = await get_default_secret_manager()

    # Get a secret (namespace defaults to the configured environment)
    result = await manager.get_secret("GITHUB_TOKEN", "prod")

    # Substitute references in a string or a parsed config
    text = await manager.inject_secrets("TOKEN=${secret:prod/GITHUB_TOKEN}")
    config = await manager.inject_secrets_into_object(config)

Configuration:
    Providers are configured in .jellos/secrets.json (or the file named by
    JELLOS_SECRETS_CONFIG):

    {
        "providers": [
            {"type": "keychain", "priority": 3, "enabled": true},
            {"type": "1password", "priority": 2, "enabled": true,
             "config": {"vault_prefix": "Jellos"}},
            {"type": "env", "priority": 1, "enabled": true}
        ],
        "default_environment": "dev",
        "throw_on_missing": false,
        "cache_timeout": 300
    }
"""

from .config import ProviderConfig, SecretManagerConfig, load_config
from .config_integration import (
    config_has_secrets,
    inject_secrets_into_config,
    inject_secrets_into_entry,
    inject_secrets_into_env,
    validate_config_secrets,
)
from .env_loader import (
    EnvLoaderConfig,
    EnvLoadResult,
    get_masked_env,
    load_environment_variables,
    parse_env_file,
    validate_required_env_vars,
)
from .errors import (
    EnvFileError,
    ProviderAuthenticationError,
    ProviderError,
    ProviderLockedError,
    ProviderUnavailableError,
    SecretNotFoundError,
    SecretReferenceError,
    SecretResolutionError,
    SecretsError,
)
from .interface import (
    ProviderHealthCheck,
    ProviderHealthStatus,
    SecretAccessLog,
    SecretEnvironment,
    SecretProvider,
    SecretProviderType,
    SecretReference,
    SecretResolutionResult,
    SecretValidationError,
)
from .manager import (
    SecretManager,
    create_secret_manager,
    get_default_secret_manager,
    reset_default_secret_manager,
)
from .masking import (
    SecretMasker,
    SecretMaskingFilter,
    get_default_masker,
    is_secret_like,
    is_secret_var_name,
    mask_secret,
    reset_default_masker,
    restore_logging,
    setup_secret_masking,
)
from .parser import (
    extract_unique_secret_keys,
    find_references,
    has_references,
    object_has_references,
    parse_secret_reference,
    replace_references,
    replace_references_in_object,
    validate_secret_reference,
)

__all__ = [
    # Manager
    "SecretManager",
    "create_secret_manager",
    "get_default_secret_manager",
    "reset_default_secret_manager",
    # Config
    "ProviderConfig",
    "SecretManagerConfig",
    "load_config",
    # Types
    "ProviderHealthCheck",
    "ProviderHealthStatus",
    "SecretAccessLog",
    "SecretEnvironment",
    "SecretProvider",
    "SecretProviderType",
    "SecretReference",
    "SecretResolutionResult",
    "SecretValidationError",
    # Errors
    "SecretsError",
    "SecretReferenceError",
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderAuthenticationError",
    "ProviderLockedError",
    "SecretNotFoundError",
    "SecretResolutionError",
    "EnvFileError",
    # Parser
    "parse_secret_reference",
    "validate_secret_reference",
    "find_references",
    "has_references",
    "object_has_references",
    "replace_references",
    "replace_references_in_object",
    "extract_unique_secret_keys",
    # Env loading
    "EnvLoaderConfig",
    "EnvLoadResult",
    "load_environment_variables",
    "parse_env_file",
    "validate_required_env_vars",
    "get_masked_env",
    # Masking
    "SecretMasker",
    "SecretMaskingFilter",
    "get_default_masker",
    "reset_default_masker",
    "mask_secret",
    "is_secret_like",
    "is_secret_var_name",
    "setup_secret_masking",
    "restore_logging",
    # Config integration
    "inject_secrets_into_config",
    "inject_secrets_into_entry",
    "inject_secrets_into_env",
    "validate_config_secrets",
    "config_has_secrets",
]
