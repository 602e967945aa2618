"""
Secrets Errors

Exception hierarchy shared by the parser, providers, manager and env loader.
Library code raises these; tool boundaries (MCP server, CLI) render them.
"""

from typing import Optional


class SecretsError(Exception):
    """Base class for all secret management errors."""
    pass


class SecretReferenceError(SecretsError, ValueError):
    """Malformed ${secret:...} reference."""
    pass


class ProviderError(SecretsError):
    """
    A single provider failed to serve a request.

    help_text carries an operator-facing remediation hint when the
    failure is fixable (sign in, unlock, install).
    """

    def __init__(self, message: str, help_text: Optional[str] = None):
        super().__init__(message)
        self.help_text = help_text


class ProviderUnavailableError(ProviderError, ConnectionError):
    """Provider tooling missing or unusable on this host."""
    pass


class ProviderAuthenticationError(ProviderError):
    """Provider requires the operator to sign in."""
    pass


class ProviderLockedError(ProviderError):
    """Backing store is locked and must be unlocked."""
    pass


class SecretNotFoundError(SecretsError, LookupError):
    """No provider could resolve the requested secret."""

    def __init__(self, key: str, namespace: str, message: Optional[str] = None):
        super().__init__(message or f"Secret not found: {namespace}/{key}")
        self.key = key
        self.namespace = namespace


class SecretResolutionError(SecretsError):
    """A ${secret:...} reference could not be resolved in strict mode."""

    def __init__(self, reference: str, reason: str):
        super().__init__(f"Failed to resolve secret reference: {reference} ({reason})")
        self.reference = reference
        self.reason = reason


class EnvFileError(SecretsError):
    """Environment file exists but could not be read or processed."""
    pass
