"""Typed, validated option sets for each CLI command.

argparse namespaces are converted here before any handler runs, so handlers
never reach into a loosely typed bag of attributes.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Any

OUTPUT_FORMATS = ("pretty", "json")
MAX_LIMIT = 250
PRIORITIES = range(0, 5)


class OptionsError(ValueError):
    pass


def _text(args: argparse.Namespace, name: str) -> str | None:
    value: Any = getattr(args, name, None)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _check_format(fmt: str) -> None:
    if fmt not in OUTPUT_FORMATS:
        raise OptionsError(f"Unknown output format '{fmt}' (choose from: {', '.join(OUTPUT_FORMATS)})")


def _check_ref(ref: str, what: str) -> None:
    if not ref:
        raise OptionsError(f"{what} ID or URL is required")


def _limit(args: argparse.Namespace, default: int) -> int:
    value = getattr(args, "limit", None)
    return default if value is None else int(value)


def _check_limit(limit: int) -> None:
    if not 1 <= limit <= MAX_LIMIT:
        raise OptionsError(f"--limit must be between 1 and {MAX_LIMIT}")


def check_account_name(name: str) -> None:
    if any(c.isspace() for c in name):
        raise OptionsError("Account name must not contain whitespace")


@dataclass(frozen=True)
class IssueShowOptions:
    id_or_url: str
    account: str | None = None
    output_format: str = "pretty"
    show_comments: bool = True

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> IssueShowOptions:
        return cls(
            id_or_url=_text(args, "id_or_url") or "",
            account=_text(args, "account"),
            output_format=_text(args, "format") or "pretty",
            show_comments=not getattr(args, "no_comments", False),
        )

    def validate(self) -> None:
        _check_ref(self.id_or_url, "Issue")
        _check_format(self.output_format)


@dataclass(frozen=True)
class IssueBranchOptions:
    id_or_url: str
    account: str | None = None

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> IssueBranchOptions:
        return cls(id_or_url=_text(args, "id_or_url") or "", account=_text(args, "account"))

    def validate(self) -> None:
        _check_ref(self.id_or_url, "Issue")


@dataclass(frozen=True)
class IssueCommentOptions:
    id_or_url: str
    body: str
    account: str | None = None

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> IssueCommentOptions:
        return cls(
            id_or_url=_text(args, "id_or_url") or "",
            body=_text(args, "body") or "",
            account=_text(args, "account"),
        )

    def validate(self) -> None:
        _check_ref(self.id_or_url, "Issue")
        if not self.body:
            raise OptionsError("Comment body must not be empty")


@dataclass(frozen=True)
class IssueListOptions:
    account: str | None = None
    assignee: str | None = None
    state: str | None = None
    label: str | None = None
    project: str | None = None
    team: str | None = None
    limit: int = 25
    output_format: str = "pretty"

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> IssueListOptions:
        return cls(
            account=_text(args, "account"),
            assignee=_text(args, "assignee"),
            state=_text(args, "state"),
            label=_text(args, "label"),
            project=_text(args, "project"),
            team=_text(args, "team"),
            limit=_limit(args, 25),
            output_format=_text(args, "format") or "pretty",
        )

    def validate(self) -> None:
        _check_format(self.output_format)
        _check_limit(self.limit)


@dataclass(frozen=True)
class IssueUpdateOptions:
    """Field changes for ``issue update``; ``None`` means leave unchanged."""

    id_or_url: str
    account: str | None = None
    title: str | None = None
    description: str | None = None
    state: str | None = None
    # email address, or "unassign"
    assignee: str | None = None
    priority: int | None = None

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> IssueUpdateOptions:
        priority = getattr(args, "priority", None)
        return cls(
            id_or_url=_text(args, "id_or_url") or "",
            account=_text(args, "account"),
            title=_text(args, "title"),
            description=getattr(args, "description", None),
            state=_text(args, "state"),
            assignee=_text(args, "assignee"),
            priority=None if priority is None else int(priority),
        )

    @property
    def has_changes(self) -> bool:
        fields = (self.title, self.description, self.state, self.assignee, self.priority)
        return any(value is not None for value in fields)

    def validate(self) -> None:
        _check_ref(self.id_or_url, "Issue")
        if not self.has_changes:
            raise OptionsError(
                "Nothing to update: pass --title, --description, --state, --assignee or --priority"
            )
        if self.priority is not None and self.priority not in PRIORITIES:
            raise OptionsError("--priority must be 0 (none), 1 (urgent), 2 (high), 3 (medium) or 4 (low)")


@dataclass(frozen=True)
class ProjectShowOptions:
    id_or_url: str
    account: str | None = None
    output_format: str = "pretty"

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> ProjectShowOptions:
        return cls(
            id_or_url=_text(args, "id_or_url") or "",
            account=_text(args, "account"),
            output_format=_text(args, "format") or "pretty",
        )

    def validate(self) -> None:
        _check_ref(self.id_or_url, "Project")
        _check_format(self.output_format)


@dataclass(frozen=True)
class ProjectIssuesOptions:
    id_or_url: str
    account: str | None = None
    output_format: str = "pretty"
    limit: int = 50

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> ProjectIssuesOptions:
        return cls(
            id_or_url=_text(args, "id_or_url") or "",
            account=_text(args, "account"),
            output_format=_text(args, "format") or "pretty",
            limit=_limit(args, 50),
        )

    def validate(self) -> None:
        _check_ref(self.id_or_url, "Project")
        _check_format(self.output_format)
        _check_limit(self.limit)


@dataclass(frozen=True)
class ProjectListOptions:
    account: str | None = None
    team: str | None = None
    limit: int = 50
    output_format: str = "pretty"

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> ProjectListOptions:
        return cls(
            account=_text(args, "account"),
            team=_text(args, "team"),
            limit=_limit(args, 50),
            output_format=_text(args, "format") or "pretty",
        )

    def validate(self) -> None:
        _check_format(self.output_format)
        _check_limit(self.limit)


@dataclass(frozen=True)
class ProjectDeleteOptions:
    id_or_url: str
    account: str | None = None
    assume_yes: bool = False

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> ProjectDeleteOptions:
        return cls(
            id_or_url=_text(args, "id_or_url") or "",
            account=_text(args, "account"),
            assume_yes=bool(getattr(args, "yes", False)),
        )

    def validate(self) -> None:
        _check_ref(self.id_or_url, "Project")


@dataclass(frozen=True)
class DocumentShowOptions:
    id_or_url: str
    account: str | None = None
    output_format: str = "pretty"

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> DocumentShowOptions:
        return cls(
            id_or_url=_text(args, "id_or_url") or "",
            account=_text(args, "account"),
            output_format=_text(args, "format") or "pretty",
        )

    def validate(self) -> None:
        _check_ref(self.id_or_url, "Document")
        _check_format(self.output_format)


@dataclass(frozen=True)
class DocumentDeleteOptions:
    id_or_url: str
    account: str | None = None
    assume_yes: bool = False

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> DocumentDeleteOptions:
        return cls(
            id_or_url=_text(args, "id_or_url") or "",
            account=_text(args, "account"),
            assume_yes=bool(getattr(args, "yes", False)),
        )

    def validate(self) -> None:
        _check_ref(self.id_or_url, "Document")


@dataclass(frozen=True)
class AccountAddOptions:
    name: str | None = None
    api_key: str | None = None
    team_id: str | None = None
    verify: bool = True

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> AccountAddOptions:
        return cls(
            name=_text(args, "name"),
            api_key=_text(args, "api_key"),
            team_id=_text(args, "team_id"),
            verify=not getattr(args, "no_verify", False),
        )

    def validate(self) -> None:
        # name and key may still be prompted for; only reject explicit junk
        if self.name is not None:
            check_account_name(self.name)


@dataclass(frozen=True)
class AccountRemoveOptions:
    name: str
    assume_yes: bool = False

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> AccountRemoveOptions:
        return cls(name=_text(args, "name") or "", assume_yes=bool(getattr(args, "yes", False)))

    def validate(self) -> None:
        if not self.name:
            raise OptionsError("Account name is required")


@dataclass(frozen=True)
class AccountSelectOptions:
    choice: str

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> AccountSelectOptions:
        return cls(choice=_text(args, "choice") or "")

    def validate(self) -> None:
        if not self.choice:
            raise OptionsError("Select an account by number or name")


@dataclass(frozen=True)
class AccountListOptions:
    output_format: str = "pretty"

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> AccountListOptions:
        return cls(output_format="json" if getattr(args, "json", False) else "pretty")

    def validate(self) -> None:
        _check_format(self.output_format)


__all__ = [
    "AccountAddOptions",
    "AccountListOptions",
    "AccountRemoveOptions",
    "AccountSelectOptions",
    "DocumentDeleteOptions",
    "DocumentShowOptions",
    "IssueBranchOptions",
    "IssueCommentOptions",
    "IssueListOptions",
    "IssueShowOptions",
    "IssueUpdateOptions",
    "MAX_LIMIT",
    "OUTPUT_FORMATS",
    "OptionsError",
    "ProjectDeleteOptions",
    "ProjectIssuesOptions",
    "ProjectListOptions",
    "ProjectShowOptions",
    "check_account_name",
]
