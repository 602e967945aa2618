"""Tests for ${secret:...} reference parsing and substitution."""

import pytest

from jellos_secrets.errors import SecretReferenceError
from jellos_secrets.interface import SecretReference
from jellos_secrets.parser import (
    extract_unique_secret_keys,
    find_references,
    has_references,
    object_has_references,
    parse_secret_reference,
    replace_references,
    replace_references_in_object,
    validate_secret_reference,
)


def make_resolver(values):
    calls = []

    async def resolve(ref: SecretReference) -> str:
        calls.append(ref.raw)
        return values.get(ref.raw, ref.raw)

    resolve.calls = calls
    return resolve


# ── Parsing ──


class TestParseSecretReference:
    """Tests for reference body parsing."""

    def test_key_only(self):
        assert parse_secret_reference("API_KEY") == ("API_KEY", None)

    def test_namespace_and_key(self):
        assert parse_secret_reference("prod/DB_PASS") == ("DB_PASS", "prod")

    def test_too_many_separators(self):
        with pytest.raises(SecretReferenceError):
            parse_secret_reference("a/b/c")

    def test_empty_key(self):
        with pytest.raises(SecretReferenceError):
            parse_secret_reference("")
        with pytest.raises(SecretReferenceError):
            parse_secret_reference("prod/")

    def test_reference_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_secret_reference("x/y/z")

    def test_validate(self):
        assert validate_secret_reference("prod/KEY") is True
        assert validate_secret_reference("a/b/c") is False


class TestFindReferences:
    """Tests for scanning text for references."""

    def test_finds_all_in_order(self):
        refs = find_references("A=${secret:ONE} B=${secret:staging/TWO}")
        assert [r.key for r in refs] == ["ONE", "TWO"]
        assert refs[0].namespace is None
        assert refs[1].namespace == "staging"
        assert refs[1].raw == "${secret:staging/TWO}"

    def test_malformed_dropped(self, caplog):
        refs = find_references("${secret:a/b/c} ${secret:OK}")
        assert [r.key for r in refs] == ["OK"]
        assert "Invalid secret reference" in caplog.text

    def test_no_references(self):
        assert find_references("plain text $secret {secret:X}") == []

    def test_scanning_is_stateless(self):
        text = "${secret:A}"
        assert len(find_references(text)) == 1
        assert len(find_references(text)) == 1
        assert has_references(text) is True
        assert has_references(text) is True

    def test_has_references(self):
        assert has_references("x ${secret:KEY} y") is True
        assert has_references("nothing") is False

    def test_object_has_references(self):
        assert object_has_references({"a": [1, {"b": "${secret:K}"}]}) is True
        assert object_has_references({"a": [1, {"b": "plain"}], "c": None}) is False
        assert object_has_references(("${secret:K}",)) is True

    def test_extract_unique_keys(self):
        text = "${secret:K} ${secret:K} ${secret:prod/K} ${secret:prod/K}"
        assert extract_unique_secret_keys(text) == [
            {"key": "K", "namespace": None},
            {"key": "K", "namespace": "prod"},
        ]


# ── Substitution ──


class TestReplaceReferences:
    """Tests for string and object substitution."""

    @pytest.mark.asyncio
    async def test_replaces_every_occurrence_once_resolved(self):
        resolver = make_resolver({"${secret:K}": "v"})
        result = await replace_references("${secret:K}-${secret:K}", resolver)
        assert result == "v-v"
        assert resolver.calls == ["${secret:K}"]

    @pytest.mark.asyncio
    async def test_no_double_substitution(self):
        resolver = make_resolver({
            "${secret:A}": "${secret:B}",
            "${secret:B}": "b-value",
        })
        result = await replace_references("${secret:A} ${secret:B}", resolver)
        assert result == "${secret:B} b-value"

    @pytest.mark.asyncio
    async def test_text_without_references_untouched(self):
        resolver = make_resolver({})
        assert await replace_references("plain", resolver) == "plain"
        assert resolver.calls == []

    @pytest.mark.asyncio
    async def test_malformed_token_left_in_place(self):
        resolver = make_resolver({"${secret:OK}": "ok"})
        result = await replace_references("${secret:a/b/c} ${secret:OK}", resolver)
        assert result == "${secret:a/b/c} ok"

    @pytest.mark.asyncio
    async def test_object_substitution_does_not_mutate(self):
        resolver = make_resolver({"${secret:PASS}": "hunter2"})
        config = {"database": {"password": "${secret:PASS}", "port": 5432}, "hosts": ["${secret:PASS}"]}
        result = await replace_references_in_object(config, resolver)
        assert result == {"database": {"password": "hunter2", "port": 5432}, "hosts": ["hunter2"]}
        assert config["database"]["password"] == "${secret:PASS}"

    @pytest.mark.asyncio
    async def test_tuple_stays_tuple(self):
        resolver = make_resolver({"${secret:X}": "x"})
        assert await replace_references_in_object(("${secret:X}", 1), resolver) == ("x", 1)
