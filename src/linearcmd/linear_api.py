from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import requests

from .config import DEFAULT_API_URL, CliSettings
from .identifiers import EntityKind
from .models import (
    CommentData,
    DocumentData,
    IssueData,
    ProjectData,
    ProjectIssueData,
    ViewerData,
)
from .retry import RetryConfig, run_with_retries

USER_AGENT = "linear-cmd/0.3.0"
HTTP_ERROR_STATUS = 400
_AUTH_CODES = frozenset({"AUTHENTICATION_ERROR", "FORBIDDEN"})
_TRANSIENT_TRANSPORT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)
_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-(?:[0-9a-fA-F]{4}-){3}[0-9a-fA-F]{12}$")

_PERSON = "{ name email }"

ISSUE_QUERY = f"""
query Issue($id: String!) {{
  issue(id: $id) {{
    id identifier title description url createdAt updatedAt
    state {{ name color }}
    assignee {_PERSON}
    labels {{ nodes {{ name color }} }}
    team {{ id key }}
    comments(first: 50) {{ nodes {{ id body createdAt user {_PERSON} }} }}
    attachments {{ nodes {{ id url title }} }}
  }}
}}
"""

_ISSUE_SUMMARY = f"id identifier title url priority dueDate state {{ name }} assignee {_PERSON}"

_PROJECT_FIELDS = f"""
    id name description state progress startDate targetDate url createdAt updatedAt
    lead {_PERSON}
"""

PROJECT_QUERY = f"""
query Project($id: String!) {{
  project(id: $id) {{ {_PROJECT_FIELDS} }}
}}
"""

PROJECT_BY_SLUG_QUERY = f"""
query ProjectBySlug($slug: String!) {{
  projects(filter: {{ slugId: {{ eq: $slug }} }}, first: 1) {{ nodes {{ {_PROJECT_FIELDS} }} }}
}}
"""

PROJECT_ISSUES_QUERY = f"""
query ProjectIssues($id: String!, $first: Int!) {{
  project(id: $id) {{
    issues(first: $first) {{
      nodes {{ {_ISSUE_SUMMARY} }}
    }}
  }}
}}
"""

ISSUES_QUERY = f"""
query Issues($first: Int!, $filter: IssueFilter) {{
  issues(first: $first, filter: $filter) {{ nodes {{ {_ISSUE_SUMMARY} }} }}
}}
"""

PROJECTS_QUERY = f"""
query Projects($first: Int!, $filter: ProjectFilter) {{
  projects(first: $first, filter: $filter) {{ nodes {{ {_PROJECT_FIELDS} }} }}
}}
"""

WORKFLOW_STATE_QUERY = """
query WorkflowState($team: ID!, $name: String!) {
  workflowStates(filter: { team: { id: { eq: $team } }, name: { eqIgnoreCase: $name } }, first: 1) {
    nodes { id name }
  }
}
"""

USER_BY_EMAIL_QUERY = """
query UserByEmail($email: String!) {
  users(filter: { email: { eq: $email } }, first: 1) { nodes { id name } }
}
"""

_DOCUMENT_FIELDS = f"""
    id title content url createdAt updatedAt
    creator {_PERSON}
    updatedBy {_PERSON}
"""

DOCUMENT_QUERY = f"""
query Document($id: String!) {{
  document(id: $id) {{ {_DOCUMENT_FIELDS} }}
}}
"""

DOCUMENT_BY_SLUG_QUERY = f"""
query DocumentBySlug($slug: String!) {{
  documents(filter: {{ slugId: {{ eq: $slug }} }}, first: 1) {{ nodes {{ {_DOCUMENT_FIELDS} }} }}
}}
"""

VIEWER_QUERY = """
query Viewer {
  viewer { id name email organization { urlKey name } }
}
"""

COMMENT_CREATE_MUTATION = f"""
mutation CommentCreate($input: CommentCreateInput!) {{
  commentCreate(input: $input) {{
    success
    comment {{ id body createdAt user {_PERSON} }}
  }}
}}
"""

DOCUMENT_DELETE_MUTATION = """
mutation DocumentDelete($id: String!) {
  documentDelete(id: $id) { success }
}
"""

ISSUE_UPDATE_MUTATION = """
mutation IssueUpdate($id: String!, $input: IssueUpdateInput!) {
  issueUpdate(id: $id, input: $input) { success }
}
"""

PROJECT_DELETE_MUTATION = """
mutation ProjectDelete($id: String!) {
  projectDelete(id: $id) { success }
}
"""


class LinearAPIError(RuntimeError):
    """Raised when the Linear GraphQL API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        errors: list[dict[str, Any]] | None = None,
        transient: bool = False,
        retry_after: float | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.errors = errors or []
        self.transient = transient
        self.retry_after = retry_after


class LinearAuthError(LinearAPIError):
    """The credential was rejected (missing, revoked or lacking permission)."""


class LinearNotFoundError(LinearAPIError):
    """The entity does not exist or is not visible to this credential."""


def _error_codes(errors: list[dict[str, Any]]) -> set[str]:
    codes: set[str] = set()
    for err in errors:
        ext = err.get("extensions")
        if isinstance(ext, dict) and isinstance(ext.get("code"), str):
            codes.add(ext["code"].upper())
    return codes


def _error_messages(errors: list[dict[str, Any]]) -> str:
    return "; ".join(str(e.get("message", "")) for e in errors if isinstance(e, dict))


def _connection_nodes(container: Any) -> list[dict[str, Any]]:
    nodes = container.get("nodes") if isinstance(container, dict) else None
    return [n for n in nodes or [] if isinstance(n, dict)]


def issue_filter(
    *,
    assignee: str | None = None,
    state: str | None = None,
    label: str | None = None,
    project: str | None = None,
    team: str | None = None,
) -> dict[str, Any]:
    """Build an ``IssueFilter`` matching by name, so no id lookups are needed.

    ``assignee`` is an email address or ``me``.
    """
    filters: dict[str, Any] = {}
    if assignee:
        if assignee.lower() == "me":
            filters["assignee"] = {"isMe": {"eq": True}}
        else:
            filters["assignee"] = {"email": {"eq": assignee}}
    if state:
        filters["state"] = {"name": {"eqIgnoreCase": state}}
    if label:
        filters["labels"] = {"some": {"name": {"eqIgnoreCase": label}}}
    if project:
        filters["project"] = {"name": {"eqIgnoreCase": project}}
    if team:
        filters["team"] = {"key": {"eq": team.upper()}}
    return filters


def _retry_after(response: Any) -> float | None:
    headers = getattr(response, "headers", None) or {}
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(str(value).strip()))
    except ValueError:
        return None


def _raise_for_errors(
    errors: list[dict[str, Any]], *, status: int | None, retry_after: float | None = None
) -> None:
    codes = _error_codes(errors)
    messages = _error_messages(errors)
    detail = messages or f"HTTP {status}"
    if status in (401, 403) or codes & _AUTH_CODES:
        raise LinearAuthError(f"Linear rejected the API key: {detail}", status=status, errors=errors)
    if status == 429 or "RATELIMITED" in codes:
        raise LinearAPIError(
            f"Linear rate limit reached: {detail}",
            status=status,
            errors=errors,
            transient=True,
            retry_after=retry_after,
        )
    if "NOT_FOUND" in codes or "not found" in messages.lower():
        raise LinearNotFoundError(detail, status=status, errors=errors)
    raise LinearAPIError(
        f"Linear API request failed: {detail}",
        status=status,
        errors=errors,
        transient=status is not None and status >= 500,
    )


@dataclass
class LinearClient:
    """Thin GraphQL client bound to one account's API key."""

    api_key: str
    api_url: str = DEFAULT_API_URL
    timeout: float = 30.0
    retry: RetryConfig | None = None
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)
    _headers: dict[str, str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        # Per-client headers: a shared session must not leak one account's key.
        self._headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    def __repr__(self) -> str:
        return f"LinearClient(api_url={self.api_url!r})"

    # ---- Transport ----------------------------------------------------
    def _post(self, payload: dict[str, Any]) -> Any:
        try:
            response = self._session.request(
                "POST",
                self.api_url,
                json=payload,
                headers=self._headers,
                timeout=self.timeout,
            )
        except _TRANSIENT_TRANSPORT_ERRORS as exc:
            raise LinearAPIError(f"Connection to Linear failed: {exc}", transient=True) from exc
        except requests.RequestException as exc:
            raise LinearAPIError(f"Request to Linear failed: {exc}") from exc
        try:
            body = response.json() if response.text else {}
        except ValueError:
            body = None
        errors = body.get("errors") if isinstance(body, dict) else None
        if response.status_code >= HTTP_ERROR_STATUS:
            _raise_for_errors(
                errors if isinstance(errors, list) else [],
                status=response.status_code,
                retry_after=_retry_after(response),
            )
        if not isinstance(body, dict):
            raise LinearAPIError("Unexpected response from Linear API (not a JSON object)")
        if errors:
            _raise_for_errors(errors, status=response.status_code)
        return body.get("data") or {}

    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = {"query": query, "variables": variables or {}}
        data = run_with_retries(lambda: self._post(payload), cfg=self.retry)
        return data if isinstance(data, dict) else {}

    def _entity(self, query: str, key: str, entity_id: str) -> dict[str, Any]:
        node = self.graphql(query, {"id": entity_id}).get(key)
        if not isinstance(node, dict):
            raise LinearNotFoundError(f"{key.capitalize()} not found: {entity_id}")
        return node

    def _entity_by_slug(self, query: str, key: str, slug: str) -> dict[str, Any]:
        container = self.graphql(query, {"slug": slug}).get(key)
        nodes = container.get("nodes") if isinstance(container, dict) else None
        if not nodes or not isinstance(nodes[0], dict):
            raise LinearNotFoundError(f"No {key} found with ID or slug: {slug}")
        return nodes[0]

    # ---- Reads --------------------------------------------------------
    def viewer(self) -> ViewerData:
        node = self.graphql(VIEWER_QUERY).get("viewer")
        if not isinstance(node, dict):
            raise LinearAuthError("Linear returned no viewer for this API key")
        return ViewerData.from_api(node)

    def issue(self, identifier: str) -> IssueData:
        return IssueData.from_api(self._entity(ISSUE_QUERY, "issue", identifier))

    def project(self, id_or_slug: str) -> ProjectData:
        try:
            node = self._entity(PROJECT_QUERY, "project", id_or_slug)
        except LinearNotFoundError:
            if _UUID_RE.match(id_or_slug):
                raise
            node = self._entity_by_slug(PROJECT_BY_SLUG_QUERY, "projects", id_or_slug)
        return ProjectData.from_api(node)

    def project_issues(self, project_id: str, limit: int = 50) -> list[ProjectIssueData]:
        data = self.graphql(PROJECT_ISSUES_QUERY, {"id": project_id, "first": limit})
        project = data.get("project")
        if not isinstance(project, dict):
            raise LinearNotFoundError(f"Project not found: {project_id}")
        return [ProjectIssueData.from_api(n) for n in _connection_nodes(project.get("issues"))]

    def issues(
        self, filters: dict[str, Any] | None = None, limit: int = 25
    ) -> list[ProjectIssueData]:
        data = self.graphql(ISSUES_QUERY, {"first": limit, "filter": filters or None})
        return [ProjectIssueData.from_api(n) for n in _connection_nodes(data.get("issues"))]

    def projects(self, team_key: str | None = None, limit: int = 50) -> list[ProjectData]:
        filters = {"accessibleTeams": {"some": {"key": {"eq": team_key.upper()}}}} if team_key else None
        data = self.graphql(PROJECTS_QUERY, {"first": limit, "filter": filters})
        return [ProjectData.from_api(n) for n in _connection_nodes(data.get("projects"))]

    def workflow_state_id(self, team_id: str, name: str) -> str:
        data = self.graphql(WORKFLOW_STATE_QUERY, {"team": team_id, "name": name})
        nodes = _connection_nodes(data.get("workflowStates"))
        if not nodes:
            raise LinearNotFoundError(f"State '{name}' not found")
        return str(nodes[0]["id"])

    def user_id(self, email: str) -> str:
        nodes = _connection_nodes(self.graphql(USER_BY_EMAIL_QUERY, {"email": email}).get("users"))
        if not nodes:
            raise LinearNotFoundError(f"User '{email}' not found")
        return str(nodes[0]["id"])

    def document(self, id_or_slug: str) -> DocumentData:
        try:
            node = self._entity(DOCUMENT_QUERY, "document", id_or_slug)
        except LinearNotFoundError:
            if _UUID_RE.match(id_or_slug):
                raise
            node = self._entity_by_slug(DOCUMENT_BY_SLUG_QUERY, "documents", id_or_slug)
        return DocumentData.from_api(node)

    def fetch(self, kind: EntityKind, entity_id: str) -> IssueData | ProjectData | DocumentData:
        if kind is EntityKind.ISSUE:
            return self.issue(entity_id)
        if kind is EntityKind.PROJECT:
            return self.project(entity_id)
        return self.document(entity_id)

    # ---- Writes -------------------------------------------------------
    def create_comment(self, issue_id: str, body: str) -> CommentData:
        data = self.graphql(COMMENT_CREATE_MUTATION, {"input": {"issueId": issue_id, "body": body}})
        result = data.get("commentCreate") or {}
        comment = result.get("comment") if isinstance(result, dict) else None
        if not result.get("success") or not isinstance(comment, dict):
            raise LinearAPIError("Linear did not confirm the new comment")
        return CommentData.from_api(comment)

    def delete_document(self, document_id: str) -> bool:
        data = self.graphql(DOCUMENT_DELETE_MUTATION, {"id": document_id})
        result = data.get("documentDelete") or {}
        return bool(isinstance(result, dict) and result.get("success"))

    def update_issue(self, issue_id: str, changes: dict[str, Any]) -> bool:
        data = self.graphql(ISSUE_UPDATE_MUTATION, {"id": issue_id, "input": changes})
        result = data.get("issueUpdate") or {}
        return bool(isinstance(result, dict) and result.get("success"))

    def delete_project(self, project_id: str) -> bool:
        data = self.graphql(PROJECT_DELETE_MUTATION, {"id": project_id})
        result = data.get("projectDelete") or {}
        return bool(isinstance(result, dict) and result.get("success"))


ClientFactory = Callable[[str], LinearClient]


def client_factory(settings: CliSettings, session: requests.Session | None = None) -> ClientFactory:
    """Build a factory producing one client per API key from CLI settings."""
    retry = RetryConfig(attempts=settings.retry_attempts, base_sleep=settings.retry_base_sleep)

    def _make(api_key: str) -> LinearClient:
        return LinearClient(
            api_key=api_key,
            api_url=settings.api_url,
            timeout=settings.http_timeout,
            retry=retry,
            session=session,
        )

    return _make


__all__ = [
    "ClientFactory",
    "LinearAPIError",
    "LinearAuthError",
    "LinearClient",
    "LinearNotFoundError",
    "client_factory",
    "issue_filter",
]
