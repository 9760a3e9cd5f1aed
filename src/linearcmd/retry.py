"""Centralized retry / backoff helpers.

``run_with_retries`` wraps a single Linear API call with exponential backoff
and jitter. Only failures flagged as transient (rate limiting, 5xx, dropped
connections) are retried; everything else propagates immediately. Retrying
stays within one account: moving on to another account is the resolver's job.

Environment overrides:
  LINEARCMD_RETRY_ATTEMPTS (default 3)
  LINEARCMD_RETRY_BASE (seconds base, default 0.5)
  LINEARCMD_RETRY_MAX_SLEEP (cap on any single sleep)
"""

from __future__ import annotations

import os
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .logging import get_logger

T = TypeVar("T")

_JITTER = random.SystemRandom()


@dataclass
class RetryConfig:
    attempts: int = field(
        default_factory=lambda: int(os.environ.get("LINEARCMD_RETRY_ATTEMPTS", "3"))
    )
    base_sleep: float = field(
        default_factory=lambda: float(os.environ.get("LINEARCMD_RETRY_BASE", "0.5"))
    )


def is_transient(exc: BaseException) -> bool:
    return bool(getattr(exc, "transient", False))


def _compute_sleep(attempt: int, cfg: RetryConfig, exc: BaseException) -> float:
    explicit = getattr(exc, "retry_after", None)
    backoff = cfg.base_sleep * (2 ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for: float = float(explicit) if explicit else backoff
    max_cap_env = os.environ.get("LINEARCMD_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
            if cap >= 0:
                sleep_for = min(sleep_for, cap)
        except ValueError:  # pragma: no cover
            return sleep_for
    return sleep_for


def run_with_retries(fn: Callable[[], T], *, cfg: RetryConfig | None = None) -> T:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except Exception as exc:
            if attempt >= attempts or not is_transient(exc):
                raise
            sleep_for = _compute_sleep(attempt, cfg, exc)
            get_logger().warning(
                f"[retry] transient error, attempt {attempt}/{attempts}, "
                f"sleeping {sleep_for:.2f}s",
                error=str(exc),
            )
            time.sleep(sleep_for)
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "run_with_retries", "is_transient"]
