"""
Environment Loader

Loads a dotenv-style file, resolves ${secret:...} references through the
secret manager, injects the results into os.environ and registers anything
secret-like with the masker.

Usage:
    from jellos_secrets import load_environment_variables

    result = await load_environment_variables(EnvLoaderConfig(environment="prod"))
    print(f"Loaded {result.loaded} variables ({result.masked} masked)")
"""

import io
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from dotenv import dotenv_values

from .errors import EnvFileError, SecretsError
from .manager import SecretManager, get_default_secret_manager
from .masking import (
    SecretMasker,
    get_default_masker,
    is_secret_like,
    is_secret_var_name,
    mask_secret,
    setup_secret_masking,
)

logger = logging.getLogger(__name__)

_ENV_KEY = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_REFERENCE_MARKER = "${secret:"


@dataclass
class EnvLoaderConfig:
    env_file_path: Optional[str] = ".env"
    environment: str = "dev"
    override: bool = False
    throw_on_missing: bool = False
    secret_manager: Optional[SecretManager] = None
    masker: Optional[SecretMasker] = None
    enable_masking: bool = True
    additional_secret_patterns: List[Pattern] = field(default_factory=list)


@dataclass
class EnvLoadResult:
    loaded: int = 0
    failed: int = 0
    masked: int = 0
    errors: List[str] = field(default_factory=list)
    variables: List[str] = field(default_factory=list)


def parse_env_file(content: str) -> Dict[str, str]:
    """
    Parse dotenv-style content with python-dotenv.

    Variable expansion is off so ${secret:...} references survive intact.
    Keys without a value and keys that are not valid variable names are
    skipped. Later keys win.
    """
    env: Dict[str, str] = {}
    values = dotenv_values(stream=io.StringIO(content), interpolate=False)

    for key, value in values.items():
        if value is None or not _ENV_KEY.fullmatch(key):
            continue
        env[key] = value

    return env


async def _read_env_file(path: Path, manager: SecretManager, environment: str) -> Dict[str, str]:
    """Read and resolve an env file. A missing file yields no variables."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug(f"No env file at {path}")
        return {}

    resolved = {}
    for key, value in parse_env_file(content).items():
        if _REFERENCE_MARKER in value:
            resolved[key] = await manager.inject_secrets(value, namespace=environment)
        else:
            resolved[key] = value
    return resolved


async def load_environment_variables(config: Optional[EnvLoaderConfig] = None) -> EnvLoadResult:
    """
    Load the env file into os.environ with secrets resolved.

    Existing variables are kept unless override is set. Variables whose
    name or value looks secret are tracked by the masker.

    Read failures and resolution failures from a strict manager are
    recorded in the result's errors and nothing is loaded.

    Raises:
        EnvFileError: If loading fails and throw_on_missing is set
    """
    config = config or EnvLoaderConfig()
    manager = config.secret_manager or await get_default_secret_manager()
    masker = config.masker or get_default_masker()
    result = EnvLoadResult()

    variables: Dict[str, str] = {}
    if config.env_file_path:
        path = Path.cwd() / config.env_file_path
        try:
            variables = await _read_env_file(path, manager, config.environment)
        except (OSError, UnicodeDecodeError, SecretsError) as e:
            message = f"Failed to load .env file: {e}"
            logger.error(f"❌ {message}")
            result.errors.append(message)
            if config.throw_on_missing:
                raise EnvFileError(message) from e

    for key, value in variables.items():
        if not config.override and key in os.environ:
            continue

        os.environ[key] = value
        result.loaded += 1
        result.variables.append(key)

        if is_secret_var_name(key) or is_secret_like(value, config.additional_secret_patterns):
            masker.add_tracked_secret(value)
            result.masked += 1

    result.failed = len(result.errors)

    if config.enable_masking:
        setup_secret_masking(masker=masker)

    logger.info(f"✅ Loaded {result.loaded} environment variables ({result.masked} tracked for masking)")
    return result


def validate_required_env_vars(required: Sequence[str]) -> Tuple[bool, List[str]]:
    """
    Check that required variables are set and non-empty.

    Returns:
        (valid, missing)
    """
    missing = [name for name in required if not os.environ.get(name)]
    return not missing, missing


def get_masked_env(masker: Optional[SecretMasker] = None) -> Dict[str, str]:
    """Snapshot of os.environ safe for logging."""
    masker = masker or get_default_masker()
    masked = {}
    for key, value in os.environ.items():
        if not value:
            masked[key] = ""
        elif is_secret_var_name(key):
            masked[key] = mask_secret(value)
        else:
            masked[key] = masker.mask_string(value)
    return masked
