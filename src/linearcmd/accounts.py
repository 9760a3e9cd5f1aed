"""Persistent store of named Linear accounts.

The store is the only component that reads or writes the accounts file. Every
mutation rewrites the whole file (temp file + rename) before the in-memory
state is updated, so callers never observe a half-applied change.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .errors import AccountNotFoundError, DuplicateAccountError, StoreLoadError

logger = logging.getLogger(__name__)

STORE_VERSION = 1


@dataclass
class Account:
    name: str
    api_key: str
    team_id: str | None = None
    # Cache of workspace slugs this account has been seen to access.
    workspaces: list[str] = field(default_factory=list)

    def masked_key(self) -> str:
        """Show only the first 6 chars of the key for safe display."""
        return self.api_key[:6] + "..." if len(self.api_key) > 6 else "***"

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "api_key": self.api_key}
        if self.team_id:
            payload["team_id"] = self.team_id
        payload["workspaces"] = list(self.workspaces)
        return payload


@dataclass
class StoreState:
    accounts: dict[str, Account] = field(default_factory=dict)
    active_account: str | None = None

    def copy(self) -> StoreState:
        return StoreState(
            accounts={name: _detached(acc) for name, acc in self.accounts.items()},
            active_account=self.active_account,
        )


def _detached(account: Account) -> Account:
    return replace(account, workspaces=list(account.workspaces))


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def _coerce_account(name: str, payload: Any, path: Path) -> Account:
    if not isinstance(payload, dict):
        raise StoreLoadError(f"Account '{name}' in {path} is not an object")
    api_key = payload.get("api_key")
    if not isinstance(api_key, str) or not api_key:
        raise StoreLoadError(f"Account '{name}' in {path} has no api_key")
    team_id = payload.get("team_id")
    workspaces_raw = payload.get("workspaces") or []
    if not isinstance(workspaces_raw, list):
        raise StoreLoadError(f"Account '{name}' in {path} has malformed workspaces")
    return Account(
        name=name,
        api_key=api_key,
        team_id=str(team_id) if team_id else None,
        workspaces=_dedupe(str(w) for w in workspaces_raw),
    )


def load_store_state(path: Path) -> StoreState:
    if not path.exists():
        return StoreState()
    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise StoreLoadError(f"Failed to load accounts from {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise StoreLoadError(f"Accounts file {path} must contain a JSON object")
    accounts_raw = raw.get("accounts", {})
    if not isinstance(accounts_raw, dict):
        raise StoreLoadError(f"'accounts' in {path} must be an object")
    accounts = {
        str(name): _coerce_account(str(name), payload, path)
        for name, payload in accounts_raw.items()
    }
    active = raw.get("active_account")
    if active is not None and active not in accounts:
        logger.warning("Active account %r no longer exists in %s; ignoring", active, path)
        active = None
    return StoreState(accounts=accounts, active_account=active)


def persist_store_state(path: Path, state: StoreState) -> None:
    payload = {
        "version": STORE_VERSION,
        "accounts": {name: acc.to_dict() for name, acc in state.accounts.items()},
        "active_account": state.active_account,
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        # Holds API keys: owner-only on POSIX, no-op elsewhere.
        try:
            os.chmod(tmp, 0o600)
        except (OSError, NotImplementedError):
            pass
        tmp.replace(path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


class AccountStore:
    """Named accounts plus the active-account pointer, backed by one JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._state: StoreState | None = None

    def load(self, force_reload: bool = False) -> StoreState:
        if self._state is None or force_reload:
            self._state = load_store_state(self.path)
        return self._state

    def _commit(self, state: StoreState) -> None:
        persist_store_state(self.path, state)
        self._state = state

    # ---- Mutations ----------------------------------------------------
    def add(self, name: str, api_key: str, team_id: str | None = None) -> Account:
        if not name or not name.strip():
            raise ValueError("Account name is required")
        if not api_key:
            raise ValueError("API key is required")
        state = self.load().copy()
        if name in state.accounts:
            raise DuplicateAccountError(name)
        account = Account(name=name, api_key=api_key, team_id=team_id or None)
        state.accounts[name] = account
        if state.active_account is None:
            state.active_account = name
        self._commit(state)
        logger.debug("Added account %s", name)
        return _detached(account)

    def remove(self, name: str) -> None:
        state = self.load().copy()
        if name not in state.accounts:
            raise AccountNotFoundError(name)
        del state.accounts[name]
        if state.active_account == name:
            state.active_account = next(iter(state.accounts), None)
        self._commit(state)
        logger.debug("Removed account %s (active now %s)", name, state.active_account)

    def set_active(self, name: str) -> bool:
        state = self.load().copy()
        if name not in state.accounts:
            return False
        state.active_account = name
        self._commit(state)
        return True

    def update_workspaces(self, name: str, workspaces: Iterable[str]) -> Account:
        """Replace (not merge) the cached workspace list of ``name``."""
        state = self.load().copy()
        account = state.accounts.get(name)
        if account is None:
            raise AccountNotFoundError(name)
        wanted = _dedupe(workspaces)
        if wanted == account.workspaces:
            return account
        account.workspaces = wanted
        self._commit(state)
        return _detached(account)

    # ---- Queries ------------------------------------------------------
    # Callers get copies; only the mutations above change stored state.
    def get(self, name: str) -> Account | None:
        account = self.load().accounts.get(name)
        return _detached(account) if account is not None else None

    def all(self) -> list[Account]:
        return [_detached(acc) for acc in self.load().accounts.values()]

    def get_active_name(self) -> str | None:
        return self.load().active_account

    def get_active(self) -> Account | None:
        state = self.load()
        if state.active_account is None:
            return None
        return self.get(state.active_account)

    def find_by_workspace(self, workspace: str) -> Account | None:
        for account in self.load().accounts.values():
            if workspace in account.workspaces:
                return _detached(account)
        return None


__all__ = [
    "Account",
    "AccountStore",
    "StoreState",
    "load_store_state",
    "persist_store_state",
]
