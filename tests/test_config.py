"""Tests for manager configuration loading."""

import json

import pytest

from jellos_secrets.config import (
    DEFAULT_CONFIG,
    ProviderConfig,
    SecretManagerConfig,
    load_config,
    resolve_config,
)
from jellos_secrets.interface import SecretEnvironment, SecretProviderType


class TestSecretManagerConfig:
    """Tests for config construction and merging."""

    def test_defaults(self):
        config = SecretManagerConfig()
        assert config.default_environment == "dev"
        assert config.enable_logging is True
        assert config.throw_on_missing is False
        assert config.cache_timeout == 300
        assert [p.type for p in config.providers] == [
            SecretProviderType.KEYCHAIN,
            SecretProviderType.ONE_PASSWORD,
            SecretProviderType.ENV,
        ]

    def test_default_priorities(self):
        config = SecretManagerConfig()
        assert config.priority_of(SecretProviderType.KEYCHAIN) == 3
        assert config.priority_of(SecretProviderType.ONE_PASSWORD) == 2
        assert config.priority_of(SecretProviderType.ENV) == 1

    def test_partial_override(self):
        config = SecretManagerConfig.from_dict({"throw_on_missing": True, "cache_timeout": 0})
        assert config.throw_on_missing is True
        assert config.cache_timeout == 0
        assert len(config.providers) == 3

    def test_environment_enum_normalized(self):
        config = SecretManagerConfig(default_environment=SecretEnvironment.PRODUCTION)
        assert config.default_environment == "prod"

    def test_provider_config(self):
        provider = ProviderConfig.from_dict({"type": "1password", "priority": 7, "config": {"vault_prefix": "Acme"}})
        assert provider.type == SecretProviderType.ONE_PASSWORD
        assert provider.priority == 7
        assert provider.enabled is True
        assert provider.config == {"vault_prefix": "Acme"}

    def test_unknown_provider_type(self):
        with pytest.raises(ValueError):
            ProviderConfig.from_dict({"type": "vault"})

    def test_defaults_not_shared(self):
        config = SecretManagerConfig.from_dict({})
        config.providers[0].config["x"] = 1
        assert "config" not in DEFAULT_CONFIG["providers"][0]


class TestLoadConfig:
    """Tests for reading the JSON config file."""

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "secrets.json")
        assert config.cache_timeout == 300

    def test_reads_file(self, tmp_path):
        path = tmp_path / "secrets.json"
        path.write_text(json.dumps({
            "default_environment": "staging",
            "providers": [{"type": "env", "priority": 1}],
        }))
        config = load_config(path)
        assert config.default_environment == "staging"
        assert [p.type for p in config.providers] == [SecretProviderType.ENV]

    def test_broken_file_falls_back(self, tmp_path, caplog):
        path = tmp_path / "secrets.json"
        path.write_text("{not json")
        config = load_config(path)
        assert config.default_environment == "dev"
        assert "Failed to load secrets config" in caplog.text


class TestResolveConfig:
    """Tests for normalizing config arguments."""

    def test_instance_passthrough(self):
        config = SecretManagerConfig()
        assert resolve_config(config) is config

    def test_dict_override(self):
        assert resolve_config({"cache_timeout": 5}).cache_timeout == 5

    def test_unknown_keys(self):
        with pytest.raises(ValueError, match="cacheTimeout"):
            resolve_config({"cacheTimeout": 5})

    def test_none_loads_file(self, monkeypatch, tmp_path):
        path = tmp_path / "secrets.json"
        path.write_text(json.dumps({"cache_timeout": 42}))
        monkeypatch.setattr("jellos_secrets.config.CONFIG_PATH", path)
        assert resolve_config(None).cache_timeout == 42
