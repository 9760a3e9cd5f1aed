"""Tests for terminal rendering helpers."""

from __future__ import annotations

import io

import pytest

from linearcmd.accounts import Account
from linearcmd.models import DocumentData, IssueData, PersonRef, ProjectData, ProjectIssueData
from linearcmd.ux import (
    Colors,
    colorize,
    print_error,
    print_hints,
    render_accounts,
    render_document,
    render_issue,
    render_issue_list,
    render_project,
    render_project_issues,
    render_projects,
)


def _tty() -> io.StringIO:
    stream = io.StringIO()
    stream.isatty = lambda: True  # type: ignore[method-assign]
    return stream


def test_colorize_with_tty_support(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TERM", "xterm-256color")
    result = colorize("test", Colors.RED, bold=True, stream=_tty())
    assert result == f"{Colors.BOLD}{Colors.RED}test{Colors.RESET}"


def test_colorize_respects_no_color(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NO_COLOR", "1")
    assert colorize("test", Colors.RED, stream=_tty()) == "test"


def test_colorize_plain_when_not_a_tty() -> None:
    assert colorize("test", Colors.RED, stream=io.StringIO()) == "test"


def test_print_error_and_hints() -> None:
    stream = io.StringIO()
    print_error("Account 'x' not found", stream=stream)
    print_hints(["Run `linear-cmd account list`"], stream=stream)
    lines = stream.getvalue().splitlines()
    assert lines[0] == "✗ Account 'x' not found"
    assert lines[1] == "  hint: Run `linear-cmd account list`"


def test_render_issue_includes_branch_and_pull_requests() -> None:
    issue = IssueData.from_api(
        {
            "id": "1",
            "identifier": "WAY-9",
            "title": "Crash on start",
            "url": "https://linear.app/w/issue/WAY-9",
            "assignee": {"name": "Sam", "email": "sam@example.com"},
            "attachments": {"nodes": [{"id": "a", "url": "https://github.com/acme/app/pull/7", "title": "Fix crash"}]},
        }
    )
    stream = io.StringIO()
    render_issue(issue, account="work", stream=stream)
    out = stream.getvalue()
    assert "WAY-9: Crash on start" in out
    assert "way-9/crash-on-start" in out
    assert "Sam <sam@example.com>" in out
    assert "#7 Fix crash (acme/app)" in out
    assert "work" in out


def test_render_project_and_issues() -> None:
    project = ProjectData(id="p", name="Roadmap", url="u", state="started", progress=0.25, lead=PersonRef("Ana"))
    stream = io.StringIO()
    render_project(project, stream=stream)
    render_project_issues(
        project,
        [ProjectIssueData(id="i", identifier="ENG-10", title="Ship", url="u", state="Done", assignee=PersonRef("Ana"))],
        stream=stream,
    )
    out = stream.getvalue()
    assert "25%" in out
    assert "Ana" in out
    assert "ENG-10 Ship [Done] @Ana" in out


def test_render_project_issues_empty() -> None:
    stream = io.StringIO()
    render_project_issues(ProjectData(id="p", name="Empty", url="u"), [], stream=stream)
    assert "No issues" in stream.getvalue()


def test_render_document_shows_content() -> None:
    stream = io.StringIO()
    render_document(DocumentData(id="d", title="Notes", url="u", content="line one\nline two"), stream=stream)
    out = stream.getvalue()
    assert out.splitlines()[0] == "Notes"
    assert "  line two" in out


def test_render_accounts_marks_active_and_masks_keys() -> None:
    stream = io.StringIO()
    render_accounts(
        [Account("work", "lin_api_secretvalue", workspaces=["acme"]), Account("home", "k")],
        active="work",
        stream=stream,
    )
    lines = stream.getvalue().splitlines()
    assert lines[0].startswith("* 1. work")
    assert "secretvalue" not in lines[0]
    assert "workspaces=acme" in lines[0]
    assert lines[1].startswith("  2. home")


def test_render_issue_list_notes_the_limit() -> None:
    issues = [
        ProjectIssueData(id=str(n), identifier=f"WAY-{n}", title=f"Task {n}", url="u", state="Todo")
        for n in (1, 2)
    ]
    out = io.StringIO()
    render_issue_list(issues, account="work", limit=2, stream=out)
    text = out.getvalue()
    assert "Found 2 issue(s) in work" in text
    assert "WAY-2 Task 2 [Todo]" in text
    assert "use --limit for more" in text


def test_render_issue_list_empty() -> None:
    out = io.StringIO()
    render_issue_list([], stream=out)
    assert "No issues found" in out.getvalue()


def test_render_projects() -> None:
    project = ProjectData(
        id="p1", name="Roadmap", url="https://linear.app/acme/project/roadmap",
        state="started", progress=0.4, lead=PersonRef(name="Ana"),
    )
    out = io.StringIO()
    render_projects([project], account="work", limit=50, stream=out)
    text = out.getvalue()
    assert "Found 1 project(s) in work" in text
    assert "State: started | Progress: 40% | Lead: Ana" in text
    assert "--limit" not in text
