"""
Secret masking for log output.

A SecretMasker holds the set of tracked secret values and rewrites any
occurrence of them in strings, nested objects and exceptions. The
SecretMaskingFilter applies a masker to every record passing through the
logging handlers it is installed on.

Usage:
    masker = get_default_masker()
    masker.add_tracked_secret(token)

    setup_secret_masking()      # root logger handlers now redact token
    ...
    restore_logging()
"""

import copy
import logging
import re
from typing import Any, Callable, Iterable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"
VISIBLE_CHARS = 4
MAX_MASK_CHARS = 20
MIN_TRACKED_LENGTH = 8

# Environment variable names that likely contain secrets
SECRET_VAR_NAMES = frozenset({
    "PASSWORD",
    "SECRET",
    "TOKEN",
    "API_KEY",
    "APIKEY",
    "ACCESS_TOKEN",
    "REFRESH_TOKEN",
    "PRIVATE_KEY",
    "SESSION_SECRET",
    "JWT_SECRET",
    "DATABASE_URL",
    "DB_PASSWORD",
    "REDIS_PASSWORD",
    "ENCRYPTION_KEY",
    "AUTH_TOKEN",
    "WEBHOOK_SECRET",
    "CLIENT_SECRET",
    "MASTER_KEY",
})

# Structural patterns for secret-like values
SECRET_PATTERNS = [
    re.compile(r"\b[A-Za-z0-9_-]{32,}\b"),                 # Generic 32+ char tokens
    re.compile(r"ghp_[A-Za-z0-9]{36}"),                    # GitHub personal access token
    re.compile(r"ghs_[A-Za-z0-9]{36}"),                    # GitHub app token
    re.compile(r"github_pat_[A-Za-z0-9_]{82}"),            # GitHub fine-grained PAT
    re.compile(r"glpat-[A-Za-z0-9_-]{20}"),                # GitLab PAT
    re.compile(r"sk-[A-Za-z0-9]{48}"),                     # OpenAI API key
    re.compile(r"AIza[A-Za-z0-9_-]{35}"),                  # Google API key
    re.compile(r"ya29\.[A-Za-z0-9_-]+"),                   # Google OAuth token
    re.compile(r"AKIA[A-Z0-9]{16}"),                       # AWS access key
    re.compile(r"xox[baprs]-[A-Za-z0-9-]+"),               # Slack tokens
    re.compile(r"sq0atp-[A-Za-z0-9_-]{22}"),               # Square access token
    re.compile(r"sk_live_[A-Za-z0-9]{24}"),                # Stripe live key
    re.compile(r"rk_live_[A-Za-z0-9]{24}"),                # Stripe restricted key
    re.compile(r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"),  # JWT
    re.compile(r"(?:postgres(?:ql)?|mysql|mongodb(?:\+srv)?)://[^:/\s]+:[^@\s]+@[^/\s]+"),  # Connection strings
    re.compile(r"-----BEGIN (?:RSA |EC )?PRIVATE KEY-----"),  # Private keys
    re.compile(r"(?:password|token|secret|api[-_]?key|auth)\s*[=:]\s*['\"]?([^\s'\"]+)", re.IGNORECASE),
]


def is_secret_var_name(name: str) -> bool:
    """Check if a variable or field name indicates it holds a secret."""
    upper_name = name.upper()
    return any(secret_name in upper_name for secret_name in SECRET_VAR_NAMES)


def is_secret_like(value: str, patterns: Iterable[re.Pattern] = ()) -> bool:
    """Check if a value matches any built-in or extra secret pattern."""
    return any(pattern.search(value) for pattern in [*SECRET_PATTERNS, *patterns])


def mask_secret(value: str) -> str:
    """
    Mask a secret value.

    Keeps the first 4 characters for identification and replaces the rest
    with at most 20 asterisks. Values shorter than 4 characters become
    [REDACTED].
    """
    if not value or len(value) < VISIBLE_CHARS:
        return REDACTED
    hidden = min(len(value) - VISIBLE_CHARS, MAX_MASK_CHARS)
    return value[:VISIBLE_CHARS] + "*" * hidden


class SecretMasker:
    """Tracked secret set plus the masking operations over it."""

    def __init__(self, secrets: Iterable[str] = ()):
        self._tracked: Set[str] = set()
        for secret in secrets:
            self.add_tracked_secret(secret)

    def add_tracked_secret(self, value: str) -> bool:
        """
        Track a value for masking.

        Only values of at least 8 characters are tracked.

        Returns:
            True if the value is now tracked
        """
        if not value or len(value) < MIN_TRACKED_LENGTH:
            return False
        self._tracked.add(value)
        return True

    def clear_tracked_secrets(self) -> None:
        self._tracked.clear()

    def get_tracked_secrets_count(self) -> int:
        return len(self._tracked)

    def is_tracked(self, value: str) -> bool:
        return value in self._tracked

    def mask_string(self, text: str) -> str:
        """Replace every occurrence of every tracked secret in text."""
        if not text or not self._tracked:
            return text

        masked = text
        # Longest first so a secret containing another is masked whole
        for secret in sorted(self._tracked, key=len, reverse=True):
            if secret in masked:
                masked = masked.replace(secret, mask_secret(secret))
        return masked

    def mask_exception(self, exc: BaseException) -> BaseException:
        """
        Copy an exception with its args masked.

        The copy keeps the exception type and traceback.
        """
        masked_args = tuple(self.mask_value(arg) for arg in exc.args)
        if masked_args == exc.args:
            return exc

        try:
            masked = copy.copy(exc)
        except TypeError:
            # Exceptions whose __init__ cannot be replayed from args
            masked = RedactedError(type(exc).__name__, self.mask_string(str(exc)))
        else:
            masked.args = masked_args
        return masked.with_traceback(exc.__traceback__)

    def mask_object(self, obj: Any) -> Any:
        """
        Mask secrets in a nested structure.

        String values whose key looks secret are fully masked; other
        strings are substring-masked.
        """
        if isinstance(obj, dict):
            masked = {}
            for key, value in obj.items():
                if isinstance(value, str) and isinstance(key, str) and is_secret_var_name(key):
                    masked[key] = mask_secret(value)
                else:
                    masked[key] = self.mask_value(value)
            return masked
        if isinstance(obj, list):
            return [self.mask_value(item) for item in obj]
        if isinstance(obj, tuple):
            return tuple(self.mask_value(item) for item in obj)
        return obj

    def mask_value(self, value: Any) -> Any:
        """Mask any value that may reach an output channel."""
        if isinstance(value, str):
            return self.mask_string(value)
        if isinstance(value, BaseException):
            return self.mask_exception(value)
        if isinstance(value, (dict, list, tuple)):
            return self.mask_object(value)
        return value


class RedactedError(Exception):
    """Stand-in for an exception that could not be copied with masked args."""

    def __init__(self, original_name: str, message: str):
        super().__init__(message)
        self.original_name = original_name

    def __str__(self) -> str:
        return f"{self.original_name}: {self.args[0]}"


def _mask_record(record: logging.LogRecord, masker: SecretMasker) -> None:
    record.msg = masker.mask_value(record.msg)

    if record.args:
        if isinstance(record.args, dict):
            record.args = masker.mask_object(record.args)
        else:
            record.args = tuple(masker.mask_value(arg) for arg in record.args)

    if record.exc_info and not record.exc_text:
        record.exc_text = logging.Formatter().formatException(record.exc_info)
    if record.exc_text:
        record.exc_text = masker.mask_string(record.exc_text)
    if record.stack_info:
        record.stack_info = masker.mask_string(record.stack_info)


class SecretMaskingFilter(logging.Filter):
    """
    Logging filter that masks tracked secrets in log records.

    Attach to handlers; always lets the record through.
    """

    def __init__(self, masker: SecretMasker):
        super().__init__()
        self.masker = masker

    def filter(self, record: logging.LogRecord) -> bool:
        _mask_record(record, self.masker)
        return True


# Process-wide default masker
_default_masker: Optional[SecretMasker] = None

# (logger, handler, filter, handler_was_added) for everything setup_secret_masking touched
_installed: List[Tuple[logging.Logger, logging.Handler, SecretMaskingFilter, bool]] = []

# Maskers applied when records are created, and the factory they wrap
_factory_maskers: List[SecretMasker] = []
_previous_factory: Optional[Callable[..., logging.LogRecord]] = None


def get_default_masker() -> SecretMasker:
    global _default_masker
    if _default_masker is None:
        _default_masker = SecretMasker()
    return _default_masker


def reset_default_masker() -> None:
    """Drop the default masker and its tracked secrets."""
    global _default_masker
    _default_masker = None


def _install_record_factory(masker: SecretMasker) -> None:
    global _previous_factory
    if any(existing is masker for existing in _factory_maskers):
        return
    _factory_maskers.append(masker)

    if _previous_factory is not None:
        return

    base_factory = logging.getLogRecordFactory()
    _previous_factory = base_factory

    def masking_record_factory(*args, **kwargs) -> logging.LogRecord:
        record = base_factory(*args, **kwargs)
        for active in _factory_maskers:
            _mask_record(record, active)
        return record

    logging.setLogRecordFactory(masking_record_factory)


def setup_secret_masking(
    target: Optional[logging.Logger] = None,
    masker: Optional[SecretMasker] = None,
) -> SecretMaskingFilter:
    """
    Install secret masking on log records and a logger's handlers.

    The log record factory is wrapped so every record is masked when it
    is created, which covers handlers configured later (dictConfig,
    basicConfig(force=True)). Every current handler of the target logger
    (root by default) also gets a SecretMaskingFilter for records built
    outside the factory. A stderr handler is added when the logger has
    none. Calling again with the same masker is a no-op; a different
    masker is installed alongside the existing ones.

    Returns:
        The filter in use
    """
    target = target or logging.getLogger()
    masker = masker or get_default_masker()

    _install_record_factory(masker)

    for installed_logger, _, existing_filter, _ in _installed:
        if installed_logger is target and existing_filter.masker is masker:
            secret_filter = existing_filter
            break
    else:
        secret_filter = SecretMaskingFilter(masker)

    if not target.handlers:
        handler = logging.StreamHandler()
        handler.addFilter(secret_filter)
        target.addHandler(handler)
        _installed.append((target, handler, secret_filter, True))
        return secret_filter

    for handler in target.handlers:
        if any(isinstance(f, SecretMaskingFilter) and f.masker is masker for f in handler.filters):
            continue
        handler.addFilter(secret_filter)
        _installed.append((target, handler, secret_filter, False))
        logger.debug(f"Secret masking installed on {handler!r}")

    return secret_filter


def restore_logging() -> None:
    """
    Remove every filter and handler installed by setup_secret_masking and
    put back the original log record factory.

    Safe to call when masking was never installed.
    """
    global _previous_factory
    while _installed:
        target, handler, secret_filter, added = _installed.pop()
        handler.removeFilter(secret_filter)
        if added:
            target.removeHandler(handler)

    _factory_maskers.clear()
    if _previous_factory is not None:
        logging.setLogRecordFactory(_previous_factory)
        _previous_factory = None


def is_masking_installed() -> bool:
    return bool(_installed) or bool(_factory_maskers)
