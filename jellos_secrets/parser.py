"""
Secret reference parser for ${secret:KEY} syntax.

Supports:
    ${secret:KEY}
    ${secret:NAMESPACE/KEY}    e.g. ${secret:prod/API_KEY}

Scanning is stateless (re.finditer over a compiled pattern), so repeated
calls over the same text always see every match.
"""

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .errors import SecretReferenceError
from .interface import SecretReference

logger = logging.getLogger(__name__)

SECRET_PATTERN = re.compile(r"\$\{secret:([^}]*)\}")

Resolver = Callable[[SecretReference], Awaitable[str]]


def parse_secret_reference(reference: str) -> Tuple[str, Optional[str]]:
    """
    Parse the body of a secret reference into (key, namespace).

    Examples:
        "API_KEY"      -> ("API_KEY", None)
        "prod/API_KEY" -> ("API_KEY", "prod")

    Raises:
        SecretReferenceError: On an empty key or more than one separator
    """
    parts = reference.split("/")

    if len(parts) == 1:
        key, namespace = parts[0], None
    elif len(parts) == 2:
        namespace, key = parts
    else:
        raise SecretReferenceError(f"Invalid secret reference format: {reference}")

    if not key:
        raise SecretReferenceError(f"Secret reference has an empty key: {reference!r}")

    return key, namespace


def validate_secret_reference(reference: str) -> bool:
    """Check whether a reference body is well-formed."""
    try:
        parse_secret_reference(reference)
        return True
    except SecretReferenceError:
        return False


def find_references(text: str) -> List[SecretReference]:
    """
    Find all secret references in a string.

    Malformed references are skipped with a warning, never raised.
    """
    references = []

    for match in SECRET_PATTERN.finditer(text):
        raw = match.group(0)
        try:
            key, namespace = parse_secret_reference(match.group(1))
        except SecretReferenceError as e:
            logger.warning(f"⚠️ Invalid secret reference {raw}: {e}")
            continue
        references.append(SecretReference(key=key, namespace=namespace, raw=raw))

    return references


def has_references(text: str) -> bool:
    """Check if a string contains any secret reference token."""
    return SECRET_PATTERN.search(text) is not None


def object_has_references(obj: Any) -> bool:
    """Check if a nested structure contains any secret references."""
    if isinstance(obj, str):
        return has_references(obj)
    if isinstance(obj, dict):
        return any(object_has_references(value) for value in obj.values())
    if isinstance(obj, (list, tuple)):
        return any(object_has_references(item) for item in obj)
    return False


async def replace_references(text: str, resolver: Resolver) -> str:
    """
    Replace secret references in a string with their values.

    Each distinct raw token is resolved exactly once; the lookups are
    issued concurrently. Every occurrence of a token is replaced.

    Args:
        text: Text containing secret references
        resolver: Coroutine function returning the value for a reference

    Returns:
        The text with references replaced
    """
    unique: Dict[str, SecretReference] = {}
    for ref in find_references(text):
        unique.setdefault(ref.raw, ref)

    if not unique:
        return text

    values = await asyncio.gather(*(resolver(ref) for ref in unique.values()))
    resolved = dict(zip(unique, values))

    # Single pass so resolved values are never rescanned
    return SECRET_PATTERN.sub(lambda m: resolved.get(m.group(0), m.group(0)), text)


async def replace_references_in_object(obj: Any, resolver: Resolver) -> Any:
    """
    Replace secret references in a nested structure (deep).

    Strings are substituted, dicts/lists/tuples are recursed depth-first,
    anything else is returned unchanged. The input is not mutated.
    """
    if isinstance(obj, str):
        return await replace_references(obj, resolver)
    if isinstance(obj, dict):
        result = {}
        for key, value in obj.items():
            result[key] = await replace_references_in_object(value, resolver)
        return result
    if isinstance(obj, list):
        return [await replace_references_in_object(item, resolver) for item in obj]
    if isinstance(obj, tuple):
        return tuple([await replace_references_in_object(item, resolver) for item in obj])
    return obj


def extract_unique_secret_keys(text: str) -> List[Dict[str, Optional[str]]]:
    """
    Extract unique (key, namespace) pairs from text.

    Useful for pre-fetching or validation.
    """
    seen = set()
    unique = []

    for ref in find_references(text):
        identity = f"{ref.namespace}/{ref.key}" if ref.namespace else ref.key
        if identity not in seen:
            seen.add(identity)
            unique.append({"key": ref.key, "namespace": ref.namespace})

    return unique
