"""Terminal rendering for linear-cmd output - no external dependencies."""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Iterable, Sequence
from typing import Any, TextIO

from .accounts import Account
from .models import DocumentData, IssueData, PersonRef, ProjectData, ProjectIssueData


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"


def _supports_color(stream: TextIO | None = None) -> bool:
    """Check if terminal supports color output."""
    stream = stream or sys.stdout
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    return os.environ.get("TERM") != "dumb"


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    """Apply color to text if terminal supports it."""
    if not _supports_color(stream):
        return text
    prefix = (Colors.BOLD if bold else "") + color
    return f"{prefix}{text}{Colors.RESET}"


def print_success(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(colorize("✓", Colors.GREEN, bold=True, stream=stream) + " " + message, file=stream)


def print_error(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stderr
    print(colorize("✗", Colors.RED, bold=True, stream=stream) + " " + message, file=stream)


def print_warning(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stderr
    print(colorize("⚠", Colors.YELLOW, bold=True, stream=stream) + " " + message, file=stream)


def print_info(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(colorize("ℹ", Colors.BLUE, bold=True, stream=stream) + " " + message, file=stream)


def print_header(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(colorize(message, Colors.CYAN, bold=True, stream=stream), file=stream)


def print_hints(hints: Iterable[str], stream: TextIO | None = None) -> None:
    stream = stream or sys.stderr
    for hint in hints:
        print("  " + colorize(f"hint: {hint}", Colors.DIM, stream=stream), file=stream)


def print_json(payload: Any, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    print(json.dumps(payload, indent=2, default=str), file=stream)


def _person(ref: PersonRef | None, fallback: str = "Unassigned") -> str:
    if ref is None:
        return fallback
    return f"{ref.name} <{ref.email}>" if ref.email else ref.name


def _field(label: str, value: str, stream: TextIO) -> None:
    print(f"  {colorize(label.ljust(10), Colors.DIM, stream=stream)} {value}", file=stream)


def _body(text: str | None, stream: TextIO) -> None:
    if not text:
        return
    print(file=stream)
    for line in text.rstrip().splitlines():
        print(f"  {line}", file=stream)


def render_issue(
    issue: IssueData,
    *,
    account: str | None = None,
    show_comments: bool = True,
    stream: TextIO | None = None,
) -> None:
    stream = stream or sys.stdout
    header = f"{issue.identifier}: {issue.title}"
    print(colorize(header, Colors.CYAN, bold=True, stream=stream), file=stream)
    _field("State", issue.state, stream)
    _field("Assignee", _person(issue.assignee), stream)
    if issue.labels:
        _field("Labels", ", ".join(label.name for label in issue.labels), stream)
    _field("Branch", colorize(issue.branch_name, Colors.GREEN, stream=stream), stream)
    _field("URL", issue.url, stream)
    if account:
        _field("Account", account, stream)
    _body(issue.description, stream)

    if issue.pull_requests:
        print(file=stream)
        print_header("Pull requests", stream)
        for pr in issue.pull_requests:
            print(f"  #{pr.number} {pr.title} ({pr.repository})", file=stream)
            print(f"    {colorize(pr.url, Colors.DIM, stream=stream)}", file=stream)

    if show_comments and issue.comments:
        print(file=stream)
        print_header(f"Comments ({len(issue.comments)})", stream)
        for comment in issue.comments:
            who = _person(comment.user, fallback="Unknown")
            print(f"  {colorize(who, Colors.BOLD, stream=stream)} {comment.created_at}", file=stream)
            for line in comment.body.rstrip().splitlines():
                print(f"    {line}", file=stream)


def render_project(
    project: ProjectData, *, account: str | None = None, stream: TextIO | None = None
) -> None:
    stream = stream or sys.stdout
    print(colorize(project.name, Colors.CYAN, bold=True, stream=stream), file=stream)
    _field("State", project.state or "Unknown", stream)
    _field("Lead", _person(project.lead, fallback="No lead"), stream)
    if project.progress is not None:
        _field("Progress", f"{project.progress * 100:.0f}%", stream)
    if project.start_date or project.target_date:
        _field("Dates", f"{project.start_date or '?'} -> {project.target_date or '?'}", stream)
    _field("URL", project.url, stream)
    if account:
        _field("Account", account, stream)
    _body(project.description, stream)


def _issue_lines(issues: Sequence[ProjectIssueData], stream: TextIO) -> None:
    width = max(len(issue.identifier) for issue in issues)
    for issue in issues:
        ident = colorize(issue.identifier.ljust(width), Colors.BOLD, stream=stream)
        state = colorize(f"[{issue.state}]", Colors.DIM, stream=stream)
        assignee = f" @{issue.assignee.name}" if issue.assignee else ""
        print(f"  {ident} {issue.title} {state}{assignee}", file=stream)


def render_project_issues(
    project: ProjectData,
    issues: Sequence[ProjectIssueData],
    stream: TextIO | None = None,
) -> None:
    stream = stream or sys.stdout
    print_header(f"{project.name} ({len(issues)} issue(s))", stream)
    if not issues:
        print("  No issues", file=stream)
        return
    _issue_lines(issues, stream)


def _more_hint(shown: int, limit: int | None, stream: TextIO) -> None:
    if limit is not None and shown >= limit:
        hint = f"(showing the first {limit}; use --limit for more)"
        print(colorize(hint, Colors.DIM, stream=stream), file=stream)


def render_issue_list(
    issues: Sequence[ProjectIssueData],
    *,
    account: str | None = None,
    limit: int | None = None,
    stream: TextIO | None = None,
) -> None:
    stream = stream or sys.stdout
    if not issues:
        print_warning("No issues found", stream)
        return
    source = f" in {account}" if account else ""
    print_header(f"Found {len(issues)} issue(s){source}", stream)
    _issue_lines(issues, stream)
    _more_hint(len(issues), limit, stream)


def render_projects(
    projects: Sequence[ProjectData],
    *,
    account: str | None = None,
    limit: int | None = None,
    stream: TextIO | None = None,
) -> None:
    stream = stream or sys.stdout
    if not projects:
        print_info("No projects found", stream)
        return
    source = f" in {account}" if account else ""
    print_header(f"Found {len(projects)} project(s){source}", stream)
    for project in projects:
        print(f"  {colorize(project.name, Colors.CYAN, bold=True, stream=stream)}", file=stream)
        details = [f"State: {project.state or 'Unknown'}"]
        if project.progress is not None:
            details.append(f"Progress: {project.progress * 100:.0f}%")
        if project.lead:
            details.append(f"Lead: {project.lead.name}")
        print(f"    {' | '.join(details)}", file=stream)
        print(f"    {colorize(project.url, Colors.DIM, stream=stream)}", file=stream)
    _more_hint(len(projects), limit, stream)


def render_document(
    document: DocumentData, *, account: str | None = None, stream: TextIO | None = None
) -> None:
    stream = stream or sys.stdout
    print(colorize(document.title, Colors.CYAN, bold=True, stream=stream), file=stream)
    _field("Creator", _person(document.creator, fallback="Unknown"), stream)
    if document.updated_by:
        _field("Updated by", _person(document.updated_by), stream)
    _field("Updated", document.updated_at or "?", stream)
    _field("URL", document.url, stream)
    if account:
        _field("Account", account, stream)
    _body(document.content, stream)


def render_accounts(
    accounts: Sequence[Account], active: str | None, stream: TextIO | None = None
) -> None:
    """Numbered account listing; the numbers are accepted by ``account select``."""
    stream = stream or sys.stdout
    if not accounts:
        print_info("No accounts configured. Run `linear-cmd account add`.", stream)
        return
    for index, account in enumerate(accounts, start=1):
        marker = colorize("*", Colors.GREEN, bold=True, stream=stream) if account.name == active else " "
        line = f"{marker} {index}. {account.name}  {colorize(account.masked_key(), Colors.DIM, stream=stream)}"
        if account.team_id:
            line += f"  team={account.team_id}"
        if account.workspaces:
            line += f"  workspaces={','.join(account.workspaces)}"
        print(line, file=stream)


__all__ = [
    "Colors",
    "colorize",
    "print_error",
    "print_header",
    "print_hints",
    "print_info",
    "print_json",
    "print_success",
    "print_warning",
    "render_accounts",
    "render_document",
    "render_issue",
    "render_issue_list",
    "render_project",
    "render_project_issues",
    "render_projects",
]
