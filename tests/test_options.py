import argparse

import pytest

from linearcmd.options import (
    AccountAddOptions,
    AccountListOptions,
    AccountRemoveOptions,
    AccountSelectOptions,
    DocumentDeleteOptions,
    IssueCommentOptions,
    IssueListOptions,
    IssueShowOptions,
    IssueUpdateOptions,
    OptionsError,
    ProjectDeleteOptions,
    ProjectIssuesOptions,
    ProjectListOptions,
    check_account_name,
)


def _ns(**kw):
    return argparse.Namespace(**kw)


def test_issue_show_from_namespace():
    opts = IssueShowOptions.from_namespace(
        _ns(id_or_url=" WAY-1 ", account="work", format="json", no_comments=True)
    )
    opts.validate()
    assert opts.id_or_url == "WAY-1"
    assert opts.account == "work"
    assert opts.output_format == "json"
    assert opts.show_comments is False


def test_unknown_format_is_rejected():
    with pytest.raises(OptionsError):
        IssueShowOptions(id_or_url="WAY-1", output_format="xml").validate()


def test_empty_comment_body_is_rejected():
    opts = IssueCommentOptions.from_namespace(_ns(id_or_url="WAY-1", body="   ", account=None))
    with pytest.raises(OptionsError):
        opts.validate()


def test_project_issue_limit_bounds():
    ProjectIssuesOptions(id_or_url="roadmap", limit=250).validate()
    with pytest.raises(OptionsError):
        ProjectIssuesOptions(id_or_url="roadmap", limit=0).validate()


def test_account_name_with_whitespace():
    with pytest.raises(OptionsError):
        AccountAddOptions(name="my work").validate()
    AccountAddOptions().validate()


def test_account_add_no_verify_flag():
    opts = AccountAddOptions.from_namespace(
        _ns(name="work", api_key="k", team_id=None, no_verify=True)
    )
    assert opts.verify is False


def test_empty_account_name_for_remove_and_select():
    with pytest.raises(OptionsError):
        AccountRemoveOptions.from_namespace(_ns(name="", yes=False)).validate()
    with pytest.raises(OptionsError):
        AccountSelectOptions.from_namespace(_ns(choice=" ")).validate()


def test_document_delete_yes_flag():
    opts = DocumentDeleteOptions.from_namespace(_ns(id_or_url="notes", account=None, yes=True))
    assert opts.assume_yes is True


def test_account_list_json_flag():
    assert AccountListOptions.from_namespace(_ns(json=True)).output_format == "json"
    assert AccountListOptions.from_namespace(_ns(json=False)).output_format == "pretty"


def test_options_are_frozen():
    opts = IssueShowOptions(id_or_url="WAY-1")
    with pytest.raises(AttributeError):
        opts.id_or_url = "WAY-2"  # type: ignore[misc]


@pytest.mark.parametrize("limit", [0, -1, 251])
def test_explicit_out_of_range_limit_is_rejected(limit):
    opts = ProjectIssuesOptions.from_namespace(_ns(id_or_url="x", limit=limit))
    assert opts.limit == limit
    with pytest.raises(OptionsError):
        opts.validate()


def test_missing_limit_uses_default():
    assert ProjectIssuesOptions.from_namespace(_ns(id_or_url="x")).limit == 50
    assert IssueListOptions.from_namespace(_ns()).limit == 25
    assert ProjectListOptions.from_namespace(_ns(limit=None)).limit == 50


def test_list_options_validate_limit_and_format():
    with pytest.raises(OptionsError):
        IssueListOptions.from_namespace(_ns(limit=0)).validate()
    with pytest.raises(OptionsError):
        ProjectListOptions.from_namespace(_ns(format="csv")).validate()


def test_issue_update_requires_a_change():
    with pytest.raises(OptionsError, match="Nothing to update"):
        IssueUpdateOptions.from_namespace(_ns(id_or_url="WAY-1")).validate()


def test_issue_update_priority_range():
    IssueUpdateOptions.from_namespace(_ns(id_or_url="WAY-1", priority=4)).validate()
    with pytest.raises(OptionsError):
        IssueUpdateOptions.from_namespace(_ns(id_or_url="WAY-1", priority=5)).validate()


def test_issue_update_empty_description_counts_as_a_change():
    opts = IssueUpdateOptions.from_namespace(_ns(id_or_url="WAY-1", description=""))
    assert opts.has_changes
    opts.validate()


def test_project_delete_yes_flag():
    opts = ProjectDeleteOptions.from_namespace(_ns(id_or_url="roadmap", yes=True))
    opts.validate()
    assert opts.assume_yes is True


def test_check_account_name():
    check_account_name("work")
    with pytest.raises(OptionsError):
        check_account_name("my work")
