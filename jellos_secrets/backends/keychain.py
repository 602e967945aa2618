"""
macOS Keychain Secret Provider

Uses the `security` command-line tool (installed by default on macOS).

Config:
    service_prefix: Keychain service name prefix (default: "com.jellos.secret")
"""

import logging
import re
import sys
import time
from typing import List, Optional

from ..config import KEYCHAIN_SERVICE_PREFIX
from ..errors import ProviderError, ProviderLockedError, ProviderUnavailableError
from ..interface import (
    ProviderHealthCheck,
    ProviderHealthStatus,
    SecretProvider,
    SecretProviderType,
)
from ..shell import get_command_version, is_command_available, run_command

logger = logging.getLogger(__name__)

SECURITY_CLI = "security"

# `security` exit status for "The specified item could not be found in the keychain."
ITEM_NOT_FOUND_EXIT_CODE = 44

LOCKED_HELP = "Unlock your keychain in Keychain Access.app or run: security unlock-keychain"


class KeychainProvider(SecretProvider):
    """
    macOS Keychain provider.

    Secrets are generic passwords with service "<prefix>.<namespace>"
    and account "<key>".
    """

    provider_type = SecretProviderType.KEYCHAIN
    name = "macOS Keychain"

    supports_write = True
    supports_list = True
    supports_delete = True

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        self.service_prefix = self.config.get("service_prefix", KEYCHAIN_SERVICE_PREFIX)
        self.read_timeout = float(self.config.get("read_timeout", 5))
        self.list_timeout = float(self.config.get("list_timeout", 10))

    async def is_available(self) -> bool:
        """Available only on macOS with the security tool on PATH."""
        if sys.platform != "darwin":
            return False
        return is_command_available(SECURITY_CLI)

    async def get_health_status(self) -> ProviderHealthCheck:
        start = time.monotonic()
        result = ProviderHealthCheck()

        if sys.platform != "darwin":
            result.error = "Keychain is only available on macOS"
            result.help_text = (
                "This provider requires macOS. Use 1Password or environment "
                "variables on other platforms."
            )
            return result

        result.cli_installed = is_command_available(SECURITY_CLI)
        if not result.cli_installed:
            result.error = "security command not found"
            result.help_text = "Install Xcode Command Line Tools: xcode-select --install"
            return result

        help_output = await get_command_version(SECURITY_CLI, ["-h"])
        if help_output:
            match = re.search(r"security (\d+\.\d+)", help_output)
            result.version = match.group(1) if match else "installed"
        else:
            result.version = "unknown"

        try:
            probe = await run_command(SECURITY_CLI, ["list-keychains"], timeout=3)
        except (OSError, ProviderError) as e:
            result.status = ProviderHealthStatus.DEGRADED
            result.error = str(e)
            result.help_text = (
                "Keychain is installed but not responding. Check Keychain Access.app "
                "or restart the system."
            )
            return result

        if probe.ok:
            result.available = True
            result.status = ProviderHealthStatus.HEALTHY
            result.latency = (time.monotonic() - start) * 1000
        else:
            result.status = ProviderHealthStatus.DEGRADED
            result.error = "Keychain access test failed"
            result.help_text = f"Keychain may be locked or inaccessible. {LOCKED_HELP}"

        return result

    async def get_secret(self, key: str, namespace: str) -> Optional[str]:
        """
        Get a secret from Keychain.

        Uses: security find-generic-password -s service -a account -w

        Raises:
            ProviderUnavailableError: If Keychain cannot be used on this host
            ProviderLockedError: If the keychain is locked
        """
        await self._ensure_available()

        result = await run_command(
            SECURITY_CLI,
            ["find-generic-password", "-s", self._service_name(namespace), "-a", key, "-w"],
            timeout=self.read_timeout,
        )

        if result.ok and result.stdout:
            return result.stdout.strip()

        if result.exit_code == ITEM_NOT_FOUND_EXIT_CODE:
            return None

        if "locked" in result.stderr.lower():
            raise ProviderLockedError("Keychain is locked", help_text=LOCKED_HELP)

        logger.debug(f"Keychain lookup for {namespace}/{key} exited with {result.exit_code}")
        return None

    async def set_secret(self, key: str, value: str, namespace: str) -> None:
        """
        Store a secret in Keychain.

        Deletes any existing entry first to avoid duplicate-item failures,
        and passes -U so an entry that survived the delete is updated.
        """
        await self._ensure_available()
        await self.delete_secret(key, namespace)

        result = await run_command(
            SECURITY_CLI,
            [
                "add-generic-password",
                "-s", self._service_name(namespace),
                "-a", key,
                "-w", value,
                "-U",
            ],
            timeout=self.read_timeout,
        )

        if result.ok:
            logger.info(f"✅ Stored {namespace}/{key} in Keychain")
            return

        stderr = result.stderr.lower()
        if "locked" in stderr:
            raise ProviderLockedError("Keychain is locked", help_text=LOCKED_HELP)
        if "permission" in stderr or "access denied" in stderr:
            raise ProviderError(
                "Permission denied to access Keychain",
                help_text="Check Keychain Access.app permissions.",
            )
        raise ProviderError(f"Failed to store secret in Keychain: {result.stderr.strip() or 'unknown error'}")

    async def list_secrets(self, namespace: str) -> List[str]:
        """List account names stored under the namespace's service."""
        await self._ensure_available()

        result = await run_command(SECURITY_CLI, ["dump-keychain"], timeout=self.list_timeout)
        if not result.ok:
            logger.warning(f"⚠️ dump-keychain failed with exit code {result.exit_code}")
            return []

        return parse_keychain_dump(result.stdout, self._service_name(namespace))

    async def delete_secret(self, key: str, namespace: str) -> bool:
        result = await run_command(
            SECURITY_CLI,
            ["delete-generic-password", "-s", self._service_name(namespace), "-a", key],
            timeout=self.read_timeout,
        )

        if result.ok:
            return True
        if result.exit_code == ITEM_NOT_FOUND_EXIT_CODE:
            return False
        if "locked" in result.stderr.lower():
            raise ProviderLockedError("Keychain is locked", help_text=LOCKED_HELP)
        return False

    async def _ensure_available(self) -> None:
        if not await self.is_available():
            raise ProviderUnavailableError(
                "Keychain is not available",
                help_text="This feature requires macOS with the security command installed.",
            )

    def _service_name(self, namespace: str) -> str:
        """Format: <prefix>.<namespace>"""
        return f"{self.service_prefix}.{namespace}"


def parse_keychain_dump(output: str, service_name: str) -> List[str]:
    """
    Extract account names of entries whose service matches.

    dump-keychain prints one block per item, each starting with a
    `keychain: "..."` line; attributes inside a block are unordered
    relative to each other.
    """
    accounts = []
    service_marker = f'"svce"<blob>="{service_name}"'

    entries: List[List[str]] = []
    for line in output.splitlines():
        if line.startswith("keychain:") or not entries:
            entries.append([])
        entries[-1].append(line)

    for entry in entries:
        if not any(service_marker in line for line in entry):
            continue
        for line in entry:
            match = re.search(r'"acct"<blob>="([^"]+)"', line)
            if match:
                accounts.append(match.group(1))
                break

    return accounts
