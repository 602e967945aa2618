"""
1Password Secrets Provider

Implements SecretProvider for 1Password using the `op` CLI (v2+).
The operator must be signed in (`op signin`) or export a service
account token for the CLI.

Config:
    vault_prefix: Vault name prefix (default: "Jellos")
    field: Item field holding the secret (default: "password")
    reference_scheme: Secret reference scheme (default: "op")
"""

import json
import logging
import time
from typing import List, Optional, Sequence

from ..config import OP_REFERENCE_SCHEME, OP_VAULT_PREFIX
from ..errors import (
    ProviderAuthenticationError,
    ProviderError,
    ProviderUnavailableError,
)
from ..interface import (
    ProviderHealthCheck,
    ProviderHealthStatus,
    SecretProvider,
    SecretProviderType,
)
from ..shell import ProcessResult, get_command_version, is_command_available, run_command

logger = logging.getLogger(__name__)

OP_CLI = "op"

INSTALL_HELP = (
    "Install 1Password CLI: brew install 1password-cli (macOS) or visit "
    "https://1password.com/downloads/command-line/"
)
SIGNIN_HELP = "Sign in to 1Password: op signin"

# The CLI has no structured error codes for these cases, only stderr text
_AUTH_MARKERS = ("not signed in", "signed in", "authentication", "session expired")
_VAULT_MISSING_MARKERS = ("isn't a vault",)
_ITEM_MISSING_MARKERS = ("isn't an item", "isn't a field", "isn't in", "could not be found", "not found")


class OnePasswordProvider(SecretProvider):
    """
    1Password CLI provider.

    Namespaces map to vaults "<prefix>-<namespace>", keys to item titles,
    and the secret lives in the item's password field.
    """

    provider_type = SecretProviderType.ONE_PASSWORD
    name = "1Password CLI"

    supports_write = True
    supports_list = True
    supports_delete = True

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        self.vault_prefix = self.config.get("vault_prefix", OP_VAULT_PREFIX)
        self.field = self.config.get("field", "password")
        self.reference_scheme = self.config.get("reference_scheme", OP_REFERENCE_SCHEME)
        self.read_timeout = float(self.config.get("read_timeout", 10))

    async def _run_op(self, args: Sequence[str], timeout: float) -> ProcessResult:
        """Run an op CLI command."""
        return await run_command(OP_CLI, args, timeout=timeout)

    async def _is_signed_in(self) -> bool:
        result = await self._run_op(["account", "list"], timeout=3)
        return result.ok

    async def is_available(self) -> bool:
        """Installed and signed in."""
        if not is_command_available(OP_CLI):
            return False
        try:
            return await self._is_signed_in()
        except (OSError, ProviderError) as e:
            logger.debug(f"op account probe failed: {e}")
            return False

    async def get_health_status(self) -> ProviderHealthCheck:
        start = time.monotonic()
        result = ProviderHealthCheck(authenticated=False)

        result.cli_installed = is_command_available(OP_CLI)
        if not result.cli_installed:
            result.error = "op command not found"
            result.help_text = INSTALL_HELP
            return result

        result.version = await get_command_version(OP_CLI, ["--version"]) or "unknown"

        try:
            signed_in = await self._is_signed_in()
        except (OSError, ProviderError) as e:
            result.status = ProviderHealthStatus.DEGRADED
            result.error = str(e)
            result.help_text = f"1Password CLI is installed but not responding. {SIGNIN_HELP}"
            return result

        if signed_in:
            result.authenticated = True
            result.available = True
            result.status = ProviderHealthStatus.HEALTHY
            result.latency = (time.monotonic() - start) * 1000
        else:
            result.status = ProviderHealthStatus.DEGRADED
            result.error = "Not signed in to 1Password"
            result.help_text = SIGNIN_HELP

        return result

    async def get_secret(self, key: str, namespace: str) -> Optional[str]:
        """
        Get a secret from 1Password.

        Uses: op read "op://<vault>/<item>/<field>"

        Raises:
            ProviderAuthenticationError: If the CLI is missing or signed out
            ProviderError: If the namespace's vault does not exist
        """
        await self._ensure_available()

        result = await self._run_op(["read", self.build_reference(key, namespace)], timeout=self.read_timeout)

        if result.ok and result.stdout:
            return result.stdout.strip()

        self._raise_for_stderr(result.stderr, namespace)

        stderr = result.stderr.lower()
        if any(marker in stderr for marker in _ITEM_MISSING_MARKERS):
            return None

        logger.debug(f"op read for {namespace}/{key} exited with {result.exit_code}")
        return None

    async def set_secret(self, key: str, value: str, namespace: str) -> None:
        """Create the item, or edit its password field if it already exists."""
        await self._ensure_available()
        vault = self.build_vault_name(namespace)

        existing = await self._run_op(["item", "get", key, "--vault", vault], timeout=5)

        if existing.ok:
            args = ["item", "edit", key, "--vault", vault, f"{self.field}={value}"]
            action = "Updated"
        else:
            args = [
                "item", "create",
                "--category", "password",
                "--vault", vault,
                "--title", key,
                f"{self.field}={value}",
            ]
            action = "Created"

        result = await self._run_op(args, timeout=self.read_timeout)
        if result.ok:
            logger.info(f"✅ {action} {key} in 1Password vault {vault}")
            return

        self._raise_for_stderr(result.stderr, namespace)
        stderr = result.stderr.lower()
        if "permission" in stderr or "access denied" in stderr:
            raise ProviderError(f'Permission denied to modify items in vault "{vault}"')
        raise ProviderError(f"Failed to store secret in 1Password: {result.stderr.strip() or 'unknown error'}")

    async def list_secrets(self, namespace: str) -> List[str]:
        """List item titles in the namespace's vault."""
        vault = self.build_vault_name(namespace)
        result = await self._run_op(["item", "list", "--vault", vault, "--format", "json"], timeout=10)

        if not result.ok:
            logger.warning(f"⚠️ Failed to list 1Password vault {vault}: {result.stderr.strip()}")
            return []

        try:
            items = json.loads(result.stdout) if result.stdout.strip() else []
        except json.JSONDecodeError:
            logger.error("❌ Invalid response from op CLI")
            return []

        return [item.get("title", "") for item in items if item.get("title")]

    async def delete_secret(self, key: str, namespace: str) -> bool:
        vault = self.build_vault_name(namespace)
        result = await self._run_op(["item", "delete", key, "--vault", vault], timeout=self.read_timeout)

        if result.ok:
            return True

        self._raise_for_stderr(result.stderr, namespace)
        return False

    async def _ensure_available(self) -> None:
        if not is_command_available(OP_CLI):
            raise ProviderUnavailableError("1Password CLI is not installed", help_text=INSTALL_HELP)
        if not await self.is_available():
            raise ProviderAuthenticationError("Not signed in to 1Password", help_text=SIGNIN_HELP)

    def _raise_for_stderr(self, stderr: str, namespace: str) -> None:
        """Turn operator-fixable CLI failures into errors."""
        text = stderr.lower()
        vault = self.build_vault_name(namespace)

        if any(marker in text for marker in _VAULT_MISSING_MARKERS) or (
            "vault" in text and "not found" in text and "item" not in text
        ):
            raise ProviderError(
                f'Vault "{vault}" not found in 1Password',
                help_text=f'Create the vault "{vault}" or check the namespace.',
            )

        if any(marker in text for marker in _AUTH_MARKERS):
            raise ProviderAuthenticationError("Not signed in to 1Password", help_text=SIGNIN_HELP)

    def build_reference(self, key: str, namespace: str) -> str:
        """Format: op://<vault>/<item>/<field>"""
        return f"{self.reference_scheme}://{self.build_vault_name(namespace)}/{key}/{self.field}"

    def build_vault_name(self, namespace: str) -> str:
        """Format: <prefix>-<namespace>"""
        return f"{self.vault_prefix}-{namespace}"
