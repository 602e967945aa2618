"""
Secret Provider Backends

Available providers for secret storage.
"""

from .keychain import KeychainProvider
from .onepassword import OnePasswordProvider
from .env import EnvProvider

# Registry of available providers, in construction order (ties in priority
# are broken by this order)
BACKENDS = {
    "keychain": KeychainProvider,
    "1password": OnePasswordProvider,
    "env": EnvProvider,
}

__all__ = ["BACKENDS", "KeychainProvider", "OnePasswordProvider", "EnvProvider"]
