"""linear-cmd CLI.

Subcommands:
  account  add | list | remove | select | test
  issue    show | branch | comment | list | update
  project  show | issues | list | delete
  document show | delete

Commands that take an issue, project or document accept a bare identifier or a
Linear URL and work out which configured account can see the entity. The list
commands use --account or, failing that, the active account.
"""

from __future__ import annotations

import argparse
import getpass
import os
import sys
from collections.abc import Callable
from typing import Any, cast

from . import __version__
from .accounts import Account
from .errors import AccountNotFoundError, DuplicateAccountError
from .linear_api import LinearAPIError, LinearClient, issue_filter
from .logging import configure_logging
from .options import (
    OUTPUT_FORMATS,
    OptionsError,
    AccountAddOptions,
    AccountListOptions,
    AccountRemoveOptions,
    AccountSelectOptions,
    DocumentDeleteOptions,
    DocumentShowOptions,
    IssueBranchOptions,
    IssueCommentOptions,
    IssueListOptions,
    IssueShowOptions,
    IssueUpdateOptions,
    ProjectDeleteOptions,
    ProjectIssuesOptions,
    ProjectListOptions,
    ProjectShowOptions,
    check_account_name,
)
from .resolver import Resolution
from .runtime import CommandContext, execute_command, prepare_context
from .ux import (
    print_error,
    print_info,
    print_json,
    print_success,
    print_warning,
    render_accounts,
    render_document,
    render_issue,
    render_issue_list,
    render_project,
    render_project_issues,
    render_projects,
)

ACCOUNT_HELP = "Use this account instead of probing all configured accounts"

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_ref(p: argparse.ArgumentParser, what: str, *, with_format: bool = True) -> None:
    p.add_argument("id_or_url", help=f"{what} identifier or Linear URL")
    p.add_argument("--account", help=ACCOUNT_HELP)
    if with_format:
        p.add_argument("--format", choices=OUTPUT_FORMATS, default="pretty")


def _group(sub: Any, name: str, help_text: str) -> Any:
    parser = sub.add_parser(name, help=help_text)
    return parser.add_subparsers(
        dest="action",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<action>",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Construct top-level CLI parser with subcommands.

    Keep ordering stable for help output readability.
    """
    p = _FormatterArgumentParser(
        prog="linear-cmd", description="Linear from the command line, across several accounts"
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Only log errors (env: LINEARCMD_QUIET=1)",
    )
    p.add_argument("--debug", action="store_true", help="Log account probing and API calls")
    p.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines on stderr")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    acc = _group(sub, "account", "Manage Linear accounts")
    pa = acc.add_parser("add", help="Add an account (prompts for missing values)")
    pa.add_argument("--name")
    pa.add_argument("--api-key", help="Personal API key (prompted without echo if omitted)")
    pa.add_argument("--team-id")
    pa.add_argument("--no-verify", action="store_true", help="Save without checking the key")
    pl = acc.add_parser("list", help="List configured accounts")
    pl.add_argument("--json", action="store_true")
    pr = acc.add_parser("remove", help="Remove an account")
    pr.add_argument("name")
    pr.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    psel = acc.add_parser("select", help="Set the active account")
    psel.add_argument("choice", help="Account name or its number from `account list`")
    acc.add_parser("test", help="Check every account's API key")

    iss = _group(sub, "issue", "Work with issues")
    pis = iss.add_parser("show", help="Show an issue")
    _add_ref(pis, "Issue")
    pis.add_argument("--no-comments", action="store_true")
    pib = iss.add_parser("branch", help="Print the suggested git branch name")
    _add_ref(pib, "Issue", with_format=False)
    pic = iss.add_parser("comment", help="Add a comment to an issue")
    _add_ref(pic, "Issue", with_format=False)
    pic.add_argument("body")
    pil = iss.add_parser("list", help="List issues of one account")
    pil.add_argument("--account", help="Account to list from (default: the active account)")
    pil.add_argument("--assignee", help="Assignee email, or 'me'")
    pil.add_argument("--state", help="Workflow state name, e.g. 'In Progress'")
    pil.add_argument("--label", help="Label name")
    pil.add_argument("--project", help="Project name")
    pil.add_argument("--team", help="Team key, e.g. ENG")
    pil.add_argument("--limit", type=int, default=25)
    pil.add_argument("--format", choices=OUTPUT_FORMATS, default="pretty")
    piu = iss.add_parser("update", help="Change an issue's fields")
    _add_ref(piu, "Issue", with_format=False)
    piu.add_argument("--title")
    piu.add_argument("--description")
    piu.add_argument("--state", help="Workflow state name of the issue's team")
    piu.add_argument("--assignee", help="Assignee email, or 'unassign'")
    piu.add_argument("--priority", type=int, help="0 none, 1 urgent, 2 high, 3 medium, 4 low")

    proj = _group(sub, "project", "Work with projects")
    pps = proj.add_parser("show", help="Show a project")
    _add_ref(pps, "Project")
    ppi = proj.add_parser("issues", help="List a project's issues")
    _add_ref(ppi, "Project")
    ppi.add_argument("--limit", type=int, default=50)
    ppl = proj.add_parser("list", help="List projects of one account")
    ppl.add_argument("--account", help="Account to list from (default: the active account)")
    ppl.add_argument("--team", help="Only projects accessible to this team key")
    ppl.add_argument("--limit", type=int, default=50)
    ppl.add_argument("--format", choices=OUTPUT_FORMATS, default="pretty")
    ppd = proj.add_parser("delete", help="Delete a project")
    _add_ref(ppd, "Project", with_format=False)
    ppd.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    doc = _group(sub, "document", "Work with documents")
    pds = doc.add_parser("show", help="Show a document")
    _add_ref(pds, "Document")
    pdd = doc.add_parser("delete", help="Delete a document")
    _add_ref(pdd, "Document", with_format=False)
    pdd.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    return p


def _confirm(question: str) -> bool:
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _client(resolution: Resolution) -> LinearClient:
    return cast(LinearClient, resolution.fetcher)


def _account_name(resolution: Resolution) -> str | None:
    return resolution.account.name if resolution.account else None


def _selected_account(ctx: CommandContext, name: str | None) -> Account:
    """``--account`` when given, else the active account."""
    if name:
        account = ctx.store.get(name)
        if account is None:
            raise AccountNotFoundError(name)
        return account
    active = ctx.store.get_active()
    if active is None:
        raise OptionsError("No active account; run `linear-cmd account add` or pass --account")
    return active


# ---- account ------------------------------------------------------------
def _cmd_account_add(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = AccountAddOptions.from_namespace(args)
    opts.validate()
    name = opts.name or input("Account name: ").strip()
    if not name:
        raise OptionsError("Account name is required")
    check_account_name(name)
    if ctx.store.get(name) is not None:
        raise DuplicateAccountError(name)
    api_key = opts.api_key or getpass.getpass("Linear API key: ").strip()
    if not api_key:
        raise OptionsError("API key is required")
    workspace = None
    if opts.verify:
        viewer = ctx.make_client(api_key).viewer()
        workspace = viewer.organization
        print_info(f"Authenticated as {viewer.name} <{viewer.email}>")
    else:
        print_warning("Saving the API key without checking it against Linear")
    ctx.store.add(name, api_key, opts.team_id)
    if workspace:
        ctx.store.update_workspaces(name, [workspace])
    print_success(f"Account '{name}' added")
    return 0


def _cmd_account_list(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = AccountListOptions.from_namespace(args)
    opts.validate()
    accounts = ctx.store.all()
    active = ctx.store.get_active_name()
    if opts.output_format == "json":
        print_json(
            [
                {
                    "name": acc.name,
                    "api_key": acc.masked_key(),
                    "team_id": acc.team_id,
                    "workspaces": acc.workspaces,
                    "active": acc.name == active,
                }
                for acc in accounts
            ]
        )
        return 0
    render_accounts(accounts, active)
    return 0


def _cmd_account_remove(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = AccountRemoveOptions.from_namespace(args)
    opts.validate()
    if ctx.store.get(opts.name) is None:
        raise AccountNotFoundError(opts.name)
    if not opts.assume_yes and not _confirm(f"Remove account '{opts.name}'?"):
        print_info("Cancelled")
        return 0
    ctx.store.remove(opts.name)
    print_success(f"Account '{opts.name}' removed")
    return 0


def _cmd_account_select(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = AccountSelectOptions.from_namespace(args)
    opts.validate()
    name = opts.choice
    if name.isdigit():
        accounts = ctx.store.all()
        index = int(name) - 1
        if not 0 <= index < len(accounts):
            raise AccountNotFoundError(name)
        name = accounts[index].name
    if not ctx.store.set_active(name):
        raise AccountNotFoundError(name)
    print_success(f"Active account is now '{name}'")
    return 0


def _cmd_account_test(ctx: CommandContext, args: argparse.Namespace) -> int:
    accounts = ctx.store.all()
    if not accounts:
        print_info("No accounts configured. Run `linear-cmd account add`.")
        return 0
    failures = 0
    for account in accounts:
        try:
            viewer = ctx.make_client(account.api_key).viewer()
        except LinearAPIError as exc:
            failures += 1
            print_error(f"{account.name}: {exc}")
            continue
        org = f" ({viewer.organization})" if viewer.organization else ""
        print_success(f"{account.name}: {viewer.name} <{viewer.email}>{org}")
    return 1 if failures else 0


# ---- issue --------------------------------------------------------------
def _cmd_issue_show(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = IssueShowOptions.from_namespace(args)
    opts.validate()
    resolution = ctx.resolver.resolve_issue(opts.id_or_url, opts.account)
    issue = resolution.unwrap()
    if opts.output_format == "json":
        payload = issue.to_dict()
        if not opts.show_comments:
            payload.pop("comments", None)
        payload["account"] = _account_name(resolution)
        print_json(payload)
        return 0
    render_issue(issue, account=_account_name(resolution), show_comments=opts.show_comments)
    return 0


def _cmd_issue_branch(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = IssueBranchOptions.from_namespace(args)
    opts.validate()
    issue = ctx.resolver.resolve_issue(opts.id_or_url, opts.account).unwrap()
    print(issue.branch_name)
    return 0


def _cmd_issue_comment(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = IssueCommentOptions.from_namespace(args)
    opts.validate()
    resolution = ctx.resolver.resolve_issue(opts.id_or_url, opts.account)
    issue = resolution.unwrap()
    _client(resolution).create_comment(issue.id, opts.body)
    print_success(f"Comment added to {issue.identifier}")
    return 0


def _cmd_issue_list(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = IssueListOptions.from_namespace(args)
    opts.validate()
    account = _selected_account(ctx, opts.account)
    filters = issue_filter(
        assignee=opts.assignee,
        state=opts.state,
        label=opts.label,
        project=opts.project,
        team=opts.team,
    )
    issues = ctx.make_client(account.api_key).issues(filters, opts.limit)
    if opts.output_format == "json":
        print_json([issue.to_dict() for issue in issues])
        return 0
    render_issue_list(issues, account=account.name, limit=opts.limit)
    return 0


def _cmd_issue_update(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = IssueUpdateOptions.from_namespace(args)
    opts.validate()
    resolution = ctx.resolver.resolve_issue(opts.id_or_url, opts.account)
    issue = resolution.unwrap()
    client = _client(resolution)
    changes: dict[str, Any] = {}
    if opts.title is not None:
        changes["title"] = opts.title
    if opts.description is not None:
        changes["description"] = opts.description
    if opts.priority is not None:
        changes["priority"] = opts.priority
    if opts.state:
        if not issue.team_id:
            raise LinearAPIError(f"Linear returned no team for {issue.identifier}")
        changes["stateId"] = client.workflow_state_id(issue.team_id, opts.state)
    if opts.assignee:
        if opts.assignee.lower() == "unassign":
            changes["assigneeId"] = None
        else:
            changes["assigneeId"] = client.user_id(opts.assignee)
    if not client.update_issue(issue.id, changes):
        raise LinearAPIError(f"Linear did not confirm the update of {issue.identifier}")
    print_success(f"Issue {issue.identifier} updated")
    return 0


# ---- project ------------------------------------------------------------
def _cmd_project_show(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = ProjectShowOptions.from_namespace(args)
    opts.validate()
    resolution = ctx.resolver.resolve_project(opts.id_or_url, opts.account)
    project = resolution.unwrap()
    if opts.output_format == "json":
        print_json({**project.to_dict(), "account": _account_name(resolution)})
        return 0
    render_project(project, account=_account_name(resolution))
    return 0


def _cmd_project_issues(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = ProjectIssuesOptions.from_namespace(args)
    opts.validate()
    resolution = ctx.resolver.resolve_project(opts.id_or_url, opts.account)
    project = resolution.unwrap()
    issues = _client(resolution).project_issues(project.id, opts.limit)
    if opts.output_format == "json":
        print_json([issue.to_dict() for issue in issues])
        return 0
    render_project_issues(project, issues)
    return 0


def _cmd_project_list(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = ProjectListOptions.from_namespace(args)
    opts.validate()
    account = _selected_account(ctx, opts.account)
    projects = ctx.make_client(account.api_key).projects(opts.team, opts.limit)
    if opts.output_format == "json":
        print_json([project.to_dict() for project in projects])
        return 0
    render_projects(projects, account=account.name, limit=opts.limit)
    return 0


def _cmd_project_delete(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = ProjectDeleteOptions.from_namespace(args)
    opts.validate()
    resolution = ctx.resolver.resolve_project(opts.id_or_url, opts.account)
    project = resolution.unwrap()
    if not opts.assume_yes and not _confirm(f"Delete project '{project.name}'?"):
        print_info("Cancelled")
        return 0
    if not _client(resolution).delete_project(project.id):
        raise LinearAPIError(f"Linear did not confirm deletion of '{project.name}'")
    print_success(f"Project '{project.name}' deleted")
    return 0


# ---- document -----------------------------------------------------------
def _cmd_document_show(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = DocumentShowOptions.from_namespace(args)
    opts.validate()
    resolution = ctx.resolver.resolve_document(opts.id_or_url, opts.account)
    document = resolution.unwrap()
    if opts.output_format == "json":
        print_json({**document.to_dict(), "account": _account_name(resolution)})
        return 0
    render_document(document, account=_account_name(resolution))
    return 0


def _cmd_document_delete(ctx: CommandContext, args: argparse.Namespace) -> int:
    opts = DocumentDeleteOptions.from_namespace(args)
    opts.validate()
    resolution = ctx.resolver.resolve_document(opts.id_or_url, opts.account)
    document = resolution.unwrap()
    if not opts.assume_yes and not _confirm(f"Delete document '{document.title}'?"):
        print_info("Cancelled")
        return 0
    if not _client(resolution).delete_document(document.id):
        raise LinearAPIError(f"Linear did not confirm deletion of '{document.title}'")
    print_success(f"Document '{document.title}' deleted")
    return 0


Handler = Callable[[CommandContext, argparse.Namespace], int]


def _build_handlers() -> dict[str, Handler]:
    return {
        "account add": _cmd_account_add,
        "account list": _cmd_account_list,
        "account remove": _cmd_account_remove,
        "account select": _cmd_account_select,
        "account test": _cmd_account_test,
        "issue show": _cmd_issue_show,
        "issue branch": _cmd_issue_branch,
        "issue comment": _cmd_issue_comment,
        "issue list": _cmd_issue_list,
        "issue update": _cmd_issue_update,
        "project show": _cmd_project_show,
        "project issues": _cmd_project_issues,
        "project list": _cmd_project_list,
        "project delete": _cmd_project_delete,
        "document show": _cmd_document_show,
        "document delete": _cmd_document_delete,
    }


def _log_level(args: argparse.Namespace, configured: str) -> str:
    if args.debug:
        return "DEBUG"
    if args.quiet:
        return "ERROR"
    return configured


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.quiet and os.environ.get("LINEARCMD_QUIET") == "1":
        args.quiet = True
    command = f"{args.cmd} {args.action}"
    handler = _build_handlers().get(command)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    configure_logging(json_logging=args.log_json, level=_log_level(args, "WARNING"))

    def _run() -> int:
        ctx = prepare_context(args)
        configure_logging(
            json_logging=args.log_json or ctx.settings.logging_json_enabled,
            level=_log_level(args, ctx.settings.logging_level),
        )
        return handler(ctx, args)

    return execute_command(_run, args, command)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
