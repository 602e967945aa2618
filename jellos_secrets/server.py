"""
Secrets MCP - provider health and audit diagnostics.

Exposes read-only tools over the default secret manager. Secret values are
never returned; only keys, namespaces and provider status.
"""

import json
import logging

from fastmcp import FastMCP

from .errors import SecretsError
from .interface import ProviderHealthStatus
from .manager import get_default_secret_manager

logger = logging.getLogger(__name__)

mcp = FastMCP("Jellos-Secrets")

_STATUS_ICONS = {
    ProviderHealthStatus.HEALTHY: "✅",
    ProviderHealthStatus.DEGRADED: "⚠️",
    ProviderHealthStatus.UNAVAILABLE: "❌",
}


@mcp.tool()
def ping() -> str:
    """Health check. Returns pong if the secrets MCP is running."""
    return "pong from Secrets MCP 🔐"


@mcp.tool()
async def secrets_health() -> str:
    """
    Report the health of every available secret provider.

    Returns:
        One block per provider with status, version, latency and remediation
    """
    try:
        manager = await get_default_secret_manager()
        health = await manager.get_providers_health()
    except SecretsError as e:
        return f"❌ Health check failed: {e}"

    if not health:
        return "❌ No secret providers available"

    lines = ["🔐 Secret Provider Health\n"]
    for provider_type, check in health.items():
        lines.append(f"{_STATUS_ICONS[check.status]} {provider_type.value}: {check.status.value}")
        if check.version:
            lines.append(f"   Version: {check.version}")
        if check.latency is not None:
            lines.append(f"   Latency: {check.latency:.0f}ms")
        if check.error:
            lines.append(f"   Error: {check.error}")
        if check.help_text:
            lines.append(f"   Help: {check.help_text}")
    return "\n".join(lines)


@mcp.tool()
async def secrets_providers() -> str:
    """List the available providers in resolution order."""
    manager = await get_default_secret_manager()
    providers = manager.get_providers()
    if not providers:
        return "❌ No secret providers available"

    lines = ["🔐 Providers (highest priority first)\n"]
    for index, provider in enumerate(providers, start=1):
        priority = manager.config.priority_of(provider.provider_type)
        lines.append(f"{index}. {provider.name} ({provider.provider_type.value}, priority {priority})")
    return "\n".join(lines)


@mcp.tool()
async def secrets_access_log(limit: int = 50, failures_only: bool = False) -> str:
    """
    Show recent secret access attempts.

    Args:
        limit: Maximum number of entries, newest first (default: 50)
        failures_only: Only show failed lookups

    Returns:
        JSON list of access log entries
    """
    manager = await get_default_secret_manager()
    logs = manager.get_access_logs()
    if failures_only:
        logs = [entry for entry in logs if not entry.success]

    entries = [entry.to_dict() for entry in reversed(logs)][:max(limit, 0)]
    return json.dumps(entries, indent=2)


@mcp.tool()
async def secrets_validate(text: str) -> str:
    """
    Check that every ${secret:...} reference in text can be resolved.

    Args:
        text: Config or env content containing references

    Returns:
        Confirmation, or one line per unresolved reference
    """
    try:
        manager = await get_default_secret_manager()
        errors = await manager.validate_secrets(text)
    except SecretsError as e:
        return f"❌ Validation failed: {e}"

    if not errors:
        return "✅ All secret references resolve"

    lines = [f"❌ {len(errors)} unresolved secret reference(s):"]
    for error in errors:
        lines.append(f"   {error.reference} ({error.namespace}/{error.key}): {error.message}")
    return "\n".join(lines)


def run(host: str = "0.0.0.0", port: int = 8000) -> None:
    logger.info(f"Starting secrets MCP on {host}:{port}")
    mcp.run(transport="http", host=host, port=port)


if __name__ == "__main__":
    run()
