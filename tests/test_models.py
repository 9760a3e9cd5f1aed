from linearcmd.models import (
    CommentData,
    IssueData,
    PersonRef,
    ProjectIssueData,
    ViewerData,
    pull_requests_from_attachments,
)


def test_pull_requests_are_picked_from_github_attachments():
    prs = pull_requests_from_attachments(
        {
            "nodes": [
                {"id": "a1", "url": "https://github.com/acme/app/pull/12", "title": "Fix"},
                {"id": "a2", "url": "https://github.com/acme/app/issues/3"},
                {"id": "a3", "url": "https://github.com/acme/lib/pull/4"},
            ]
        }
    )
    assert [(p.repository, p.number) for p in prs] == [("acme/app", 12), ("acme/lib", 4)]
    assert prs[1].title == "Pull Request"


def test_issue_from_minimal_node():
    issue = IssueData.from_api({"id": "1", "identifier": "ENG-5", "title": "Add SSO"})
    assert issue.state == "Unknown"
    assert issue.assignee is None
    assert issue.labels == []
    assert issue.branch_name == "eng-5/add-sso"


def test_issue_to_dict_is_json_friendly():
    issue = IssueData.from_api(
        {"id": "1", "identifier": "ENG-5", "title": "Add SSO", "assignee": {"name": "Ana"}}
    )
    data = issue.to_dict()
    assert data["assignee"] == {"name": "Ana", "email": ""}


def test_person_ref_ignores_non_objects():
    assert PersonRef.from_api(None) is None
    assert PersonRef.from_api({}).name == "Unknown"


def test_comment_and_project_issue_nodes():
    comment = CommentData.from_api({"id": "c", "body": None, "createdAt": "2024-01-01"})
    assert comment.body == ""
    assert comment.user is None
    issue = ProjectIssueData.from_api({"id": "i", "identifier": "X-1", "priority": 1.0})
    assert issue.priority == 1


def test_viewer_organization_slug():
    viewer = ViewerData.from_api({"id": "u", "name": "Sam", "organization": {"urlKey": "acme"}})
    assert viewer.organization == "acme"
    assert ViewerData.from_api({"id": "u"}).organization is None
