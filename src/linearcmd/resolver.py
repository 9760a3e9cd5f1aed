"""Map an identifier or URL onto the account that can see the entity.

Resolution order:

1. If the input is a URL, its workspace slug is looked up in the account
   store's workspace cache and the cached account is probed first. A miss or
   a failed probe is never fatal; the cache may be stale.
2. Every other configured account is probed in insertion order, stopping at
   the first success. The winning account's workspace cache learns the slug.
3. When nothing succeeds the caller gets a single ``NO_ACCESSIBLE_ACCOUNT``
   error; per-account failures are only logged.

Probes run one at a time so a hit stops further (rate limited) calls and
exactly one account is recorded as the accessor of a workspace.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from .accounts import Account, AccountStore
from .errors import (
    InvalidIdentifierError,
    ResolutionError,
    ResolutionErrorKind,
    ResolutionFailed,
    redact,
)
from .identifiers import EntityKind, ParsedIdentifier, derive_branch_name, parse_identifier
from .linear_api import LinearAPIError, LinearAuthError, LinearNotFoundError
from .logging import StructuredLogger, get_logger

_ACCOUNT_HINTS = (
    "Use --account to choose which account to use",
    "Run `linear-cmd account list` to see configured accounts",
)


class EntityFetcher(Protocol):
    def fetch(self, kind: EntityKind, entity_id: str) -> Any: ...


FetcherFactory = Callable[[str], EntityFetcher]


@dataclass
class Resolution:
    kind: EntityKind
    identifier: ParsedIdentifier | None = None
    account: Account | None = None
    entity: Any = None
    # Client bound to the answering account; write commands reuse it.
    fetcher: EntityFetcher | None = None
    error: ResolutionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise ResolutionFailed(self.error)
        return self.entity


class EntityResolver:
    def __init__(self, store: AccountStore, client_factory: FetcherFactory) -> None:
        self.store = store
        self.client_factory = client_factory

    @property
    def logger(self) -> StructuredLogger:
        return get_logger()

    def resolve(
        self,
        text: str,
        kind: EntityKind = EntityKind.ISSUE,
        account_name: str | None = None,
    ) -> Resolution:
        try:
            parsed = parse_identifier(text, kind)
        except InvalidIdentifierError as exc:
            return self._fail(
                kind,
                ResolutionErrorKind.INVALID_IDENTIFIER,
                str(exc),
                _identifier_hints(kind),
            )

        if account_name:
            return self._resolve_with(parsed, account_name)

        accounts = self.store.all()
        if not accounts:
            return self._fail(
                kind,
                ResolutionErrorKind.NO_ACCOUNTS_CONFIGURED,
                "No accounts configured",
                ("Run `linear-cmd account add` to add one",),
                parsed,
            )

        with self.logger.timed_operation(
            "resolve", kind=kind.value, entity_id=parsed.entity_id, workspace=parsed.workspace
        ):
            return self._locate(parsed, accounts)

    def resolve_issue(self, text: str, account_name: str | None = None) -> Resolution:
        return self.resolve(text, EntityKind.ISSUE, account_name)

    def resolve_project(self, text: str, account_name: str | None = None) -> Resolution:
        return self.resolve(text, EntityKind.PROJECT, account_name)

    def resolve_document(self, text: str, account_name: str | None = None) -> Resolution:
        return self.resolve(text, EntityKind.DOCUMENT, account_name)

    # ---- Internals ----------------------------------------------------
    def _locate(self, parsed: ParsedIdentifier, accounts: list[Account]) -> Resolution:
        tried: set[str] = set()
        if parsed.workspace:
            cached = self.store.find_by_workspace(parsed.workspace)
            if cached is not None:
                tried.add(cached.name)
                hit = self._probe(cached, parsed, source="cache")
                if hit is not None:
                    return hit
                self.logger.debug(
                    f"cached account {cached.name} could not resolve {parsed.entity_id}; "
                    "probing all accounts",
                    workspace=parsed.workspace,
                )

        for account in accounts:
            if account.name in tried:
                continue
            tried.add(account.name)
            hit = self._probe(account, parsed, source="scan")
            if hit is not None:
                hit.account = self._remember_workspace(account, parsed.workspace)
                return hit

        return self._fail(
            parsed.kind,
            ResolutionErrorKind.NO_ACCESSIBLE_ACCOUNT,
            f"None of the {len(accounts)} configured account(s) can access "
            f"{parsed.kind.value} {parsed.entity_id}",
            _ACCOUNT_HINTS,
            parsed,
        )

    def _resolve_with(self, parsed: ParsedIdentifier, account_name: str) -> Resolution:
        account = self.store.get(account_name)
        if account is None:
            return self._fail(
                parsed.kind,
                ResolutionErrorKind.ACCOUNT_NOT_FOUND,
                f"Account '{account_name}' not found",
                ("Run `linear-cmd account list` to see configured accounts",),
                parsed,
            )
        hit = self._probe(account, parsed, source="explicit")
        if hit is None:
            return self._fail(
                parsed.kind,
                ResolutionErrorKind.NO_ACCESSIBLE_ACCOUNT,
                f"Account '{account_name}' cannot access {parsed.kind.value} {parsed.entity_id}",
                ("Check the API key with `linear-cmd account test`",),
                parsed,
            )
        hit.account = self._remember_workspace(account, parsed.workspace)
        return hit

    def _probe(self, account: Account, parsed: ParsedIdentifier, source: str) -> Resolution | None:
        fetcher = self.client_factory(account.api_key)
        try:
            entity = fetcher.fetch(parsed.kind, parsed.entity_id)
        except LinearAuthError as exc:
            self.logger.log_probe(
                account.name,
                parsed.kind.value,
                parsed.entity_id,
                "unauthorized",
                level=logging.WARNING,
                source=source,
                error=redact(str(exc)),
            )
            return None
        except LinearNotFoundError:
            self.logger.log_probe(
                account.name, parsed.kind.value, parsed.entity_id, "not_found", source=source
            )
            return None
        except LinearAPIError as exc:
            self.logger.log_probe(
                account.name,
                parsed.kind.value,
                parsed.entity_id,
                "error",
                source=source,
                error=redact(str(exc)),
            )
            return None
        self.logger.log_probe(
            account.name, parsed.kind.value, parsed.entity_id, "found", source=source
        )
        return Resolution(
            kind=parsed.kind,
            identifier=parsed,
            account=account,
            entity=entity,
            fetcher=fetcher,
        )

    def _remember_workspace(self, account: Account, workspace: str | None) -> Account:
        if not workspace or workspace in account.workspaces:
            return account
        try:
            updated = self.store.update_workspaces(account.name, [*account.workspaces, workspace])
        except OSError as exc:
            # The cache is only a hint; the entity was found regardless.
            self.logger.warning(
                f"could not cache workspace {workspace} for account {account.name}",
                account=account.name,
                workspace=workspace,
                error=str(exc),
            )
            return account
        self.logger.info(
            f"cached workspace {workspace} for account {account.name}",
            account=account.name,
            workspace=workspace,
        )
        return updated

    def _fail(
        self,
        kind: EntityKind,
        error_kind: ResolutionErrorKind,
        message: str,
        hints: tuple[str, ...] = (),
        parsed: ParsedIdentifier | None = None,
    ) -> Resolution:
        return Resolution(
            kind=kind,
            identifier=parsed,
            error=ResolutionError(error_kind, message, hints),
        )


def _identifier_hints(kind: EntityKind) -> tuple[str, ...]:
    if kind is EntityKind.ISSUE:
        return ("Expected an issue key like WAY-123 or a https://linear.app/<workspace>/issue/... URL",)
    return (f"Expected a {kind.value} id, slug or https://linear.app/<workspace>/{kind.value}/... URL",)


__all__ = [
    "EntityFetcher",
    "EntityResolver",
    "FetcherFactory",
    "Resolution",
    "derive_branch_name",
]
