"""Tests for the diagnostics MCP tools."""

import json

import pytest

from jellos_secrets import server
from jellos_secrets.errors import ProviderError
from jellos_secrets.interface import SecretProviderType

from .conftest import FakeProvider


def tool(obj):
    """Underlying function of a registered tool."""
    return getattr(obj, "fn", obj)


@pytest.fixture
async def default_manager(monkeypatch, make_manager):
    keychain = FakeProvider(SecretProviderType.KEYCHAIN, error=ProviderError("Keychain is locked"))
    env = FakeProvider(SecretProviderType.ENV, {"dev/API_KEY": "super-secret-value"})
    manager = await make_manager(keychain, env)

    async def get_default():
        return manager

    monkeypatch.setattr(server, "get_default_secret_manager", get_default)
    return manager


class TestServerTools:
    """Tests for tool output formatting."""

    def test_ping(self):
        assert tool(server.ping)() == "pong from Secrets MCP 🔐"

    @pytest.mark.asyncio
    async def test_health(self, default_manager):
        output = await tool(server.secrets_health)()
        assert "❌ keychain: unavailable" in output
        assert "Keychain is locked" in output
        assert "✅ env: healthy" in output

    @pytest.mark.asyncio
    async def test_providers(self, default_manager):
        output = await tool(server.secrets_providers)()
        assert "1. Fake keychain (keychain, priority 3)" in output
        assert "2. Fake env (env, priority 1)" in output

    @pytest.mark.asyncio
    async def test_access_log_never_contains_values(self, default_manager):
        await default_manager.get_secret("API_KEY")
        output = await tool(server.secrets_access_log)()
        entries = json.loads(output)

        assert entries[0]["key"] == "API_KEY"
        assert entries[0]["success"] is True
        assert entries[1]["provider"] == "keychain"
        assert "super-secret-value" not in output

    @pytest.mark.asyncio
    async def test_access_log_failures_only(self, default_manager):
        await default_manager.get_secret("API_KEY")
        entries = json.loads(await tool(server.secrets_access_log)(failures_only=True))
        assert [entry["success"] for entry in entries] == [False]

    @pytest.mark.asyncio
    async def test_validate(self, default_manager):
        assert await tool(server.secrets_validate)("${secret:API_KEY}") == "✅ All secret references resolve"

        output = await tool(server.secrets_validate)("${secret:API_KEY} ${secret:prod/MISSING}")
        assert output.startswith("❌ 1 unresolved")
        assert "${secret:prod/MISSING} (prod/MISSING)" in output
