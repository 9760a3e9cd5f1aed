"""Error taxonomy & redaction helpers.

Two families live here:

- exceptions raised by local validation (account store mutations, identifier
  parsing, configuration loading);
- value types describing why an entity could not be resolved. The resolver
  returns these instead of raising so command handlers decide how to react.

Public API:
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"lin_api_[A-Za-z0-9]{20,}"),  # personal API keys
    re.compile(r"lin_oauth_[A-Za-z0-9]{20,}"),  # OAuth access tokens
]

_REDACTION_PLACEHOLDER = "<redacted>"


class ConfigError(RuntimeError):
    pass


class AccountStoreError(RuntimeError):
    """Base class for account store failures (always local, never network)."""


class DuplicateAccountError(AccountStoreError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Account '{name}' already exists")
        self.name = name


class AccountNotFoundError(AccountStoreError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Account '{name}' not found")
        self.name = name


class StoreLoadError(AccountStoreError):
    """Backing file exists but cannot be read or parsed.

    Never downgraded to an empty store: existing accounts must not be lost.
    """


class InvalidIdentifierError(ValueError):
    def __init__(self, text: str, kind: str = "issue") -> None:
        super().__init__(f"Invalid {kind} identifier or URL: {text!r}")
        self.text = text
        self.kind = kind


class ResolutionErrorKind(str, Enum):
    INVALID_IDENTIFIER = "invalid_identifier"
    NO_ACCOUNTS_CONFIGURED = "no_accounts_configured"
    NO_ACCESSIBLE_ACCOUNT = "no_accessible_account"
    ACCOUNT_NOT_FOUND = "account_not_found"


@dataclass(frozen=True)
class ResolutionError:
    kind: ResolutionErrorKind
    message: str
    hints: tuple[str, ...] = field(default_factory=tuple)


class ResolutionFailed(RuntimeError):
    """Raised by ``Resolution.unwrap`` for callers preferring exceptions."""

    def __init__(self, error: ResolutionError) -> None:
        super().__init__(error.message)
        self.error = error


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Redact Linear credentials in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    - Linear rate limiting (HTTP 429 / RATELIMITED) -> 'linear.rate_limit', transient
    - Authentication / permission failures -> 'linear.auth'
    - Network-y keywords -> 'network', transient
    - JSON / YAML parse errors -> 'parse'
    - Fallback -> 'generic'
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__
    status = getattr(exc, "status", None)

    if status == 429 or "ratelimited" in low or "rate limit" in low:
        return ErrorInfo("linear.rate_limit", redact(msg), name, transient=True)
    if status in (401, 403) or name == "LinearAuthError" or "authentication" in low:
        return ErrorInfo("linear.auth", redact(msg), name)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "connection refused")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if any(k in low for k in ("json", "yaml", "scannererror", "parsererror")):
        return ErrorInfo("parse", redact(msg), name)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "AccountNotFoundError",
    "AccountStoreError",
    "ConfigError",
    "DuplicateAccountError",
    "ErrorInfo",
    "InvalidIdentifierError",
    "ResolutionError",
    "ResolutionErrorKind",
    "ResolutionFailed",
    "StoreLoadError",
    "classify_error",
    "redact",
]
