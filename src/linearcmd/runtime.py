"""Runtime helpers for linear-cmd CLI orchestration."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from .accounts import AccountStore
from .config import CliSettings, load_settings
from .errors import (
    AccountStoreError,
    ConfigError,
    ResolutionFailed,
    StoreLoadError,
    classify_error,
    redact,
)
from .linear_api import ClientFactory, LinearAPIError, client_factory
from .logging import get_logger
from .options import OptionsError
from .resolver import EntityResolver
from .ux import print_error, print_hints

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


@dataclass
class CommandContext:
    """Everything a command handler needs, built once per invocation."""

    settings: CliSettings
    store: AccountStore
    resolver: EntityResolver
    make_client: ClientFactory


def prepare_context(
    args: Any,
    *,
    loader: Callable[[], CliSettings] | None = None,
    factory: Callable[[CliSettings], ClientFactory] | None = None,
) -> CommandContext:
    settings = (loader or load_settings)()
    store = AccountStore(settings.store_path)
    make_client = (factory or client_factory)(settings)
    return CommandContext(
        settings=settings,
        store=store,
        resolver=EntityResolver(store, make_client),
        make_client=make_client,
    )


def _report(exc: BaseException) -> None:
    print_error(redact(str(exc)))
    if isinstance(exc, ResolutionFailed):
        print_hints(exc.error.hints)


def execute_command(handler: _HandlerCallable, args: Any, command: str) -> int:
    """Run a command handler, logging its duration and mapping errors to exit codes."""
    logger = get_logger()
    start = time.monotonic()
    try:
        result = handler()
        exit_code = int(result) if result is not None else EXIT_OK
    except (ConfigError, StoreLoadError) as exc:
        _report(exc)
        exit_code = EXIT_CONFIG
    except OSError as exc:
        logger.debug(f"command {command} failed", operation=command, error=str(exc))
        _report(exc)
        exit_code = EXIT_CONFIG
    except (ResolutionFailed, OptionsError, AccountStoreError, LinearAPIError, ValueError) as exc:
        info = classify_error(exc)
        logger.debug(
            f"command {command} failed",
            operation=command,
            error=info.message,
            category=info.category,
        )
        _report(exc)
        exit_code = EXIT_FAILURE
    duration_ms = max(0.0, time.monotonic() - start) * 1000
    logger.log_performance(
        f"command.{command}",
        duration_ms,
        outcome="ok" if exit_code == EXIT_OK else "failed",
        exit_code=exit_code,
    )
    return exit_code


__all__ = ["CommandContext", "EXIT_CONFIG", "EXIT_FAILURE", "EXIT_OK", "execute_command", "prepare_context"]
