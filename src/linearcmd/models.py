from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any

from .identifiers import derive_branch_name

_PR_URL_RE = re.compile(r"github\.com/([^/]+/[^/]+)/pull/(\d+)")


def _nodes(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, dict):
        nodes = value.get("nodes")
        if isinstance(nodes, list):
            return [n for n in nodes if isinstance(n, dict)]
    return []


@dataclass
class PersonRef:
    name: str
    email: str = ""

    @classmethod
    def from_api(cls, node: Any) -> PersonRef | None:
        if not isinstance(node, dict):
            return None
        return cls(name=str(node.get("name") or "Unknown"), email=str(node.get("email") or ""))


@dataclass
class LabelRef:
    name: str
    color: str = ""


@dataclass
class PullRequestRef:
    id: str
    url: str
    title: str
    number: int
    repository: str


@dataclass
class CommentData:
    id: str
    body: str
    user: PersonRef | None
    created_at: str

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> CommentData:
        return cls(
            id=str(node.get("id", "")),
            body=str(node.get("body") or ""),
            user=PersonRef.from_api(node.get("user")),
            created_at=str(node.get("createdAt") or ""),
        )


def pull_requests_from_attachments(attachments: Any) -> list[PullRequestRef]:
    """GitHub pull requests linked to an issue, recognised by attachment URL."""
    out: list[PullRequestRef] = []
    for node in _nodes(attachments):
        url = str(node.get("url") or "")
        m = _PR_URL_RE.search(url)
        if not m:
            continue
        out.append(
            PullRequestRef(
                id=str(node.get("id", "")),
                url=url,
                title=str(node.get("title") or "Pull Request"),
                number=int(m.group(2)),
                repository=m.group(1),
            )
        )
    return out


@dataclass
class IssueData:
    id: str
    identifier: str
    title: str
    url: str
    branch_name: str
    state: str = "Unknown"
    description: str | None = None
    assignee: PersonRef | None = None
    labels: list[LabelRef] = field(default_factory=list)
    comments: list[CommentData] = field(default_factory=list)
    pull_requests: list[PullRequestRef] = field(default_factory=list)
    team_id: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> IssueData:
        identifier = str(node.get("identifier", ""))
        title = str(node.get("title") or "")
        state = node.get("state") if isinstance(node.get("state"), dict) else {}
        team = node.get("team") if isinstance(node.get("team"), dict) else {}
        return cls(
            id=str(node.get("id", "")),
            identifier=identifier,
            title=title,
            url=str(node.get("url") or ""),
            branch_name=derive_branch_name(identifier, title),
            state=str(state.get("name") or "Unknown"),
            description=node.get("description"),
            assignee=PersonRef.from_api(node.get("assignee")),
            labels=[
                LabelRef(name=str(n.get("name", "")), color=str(n.get("color") or ""))
                for n in _nodes(node.get("labels"))
            ],
            comments=[CommentData.from_api(n) for n in _nodes(node.get("comments"))],
            pull_requests=pull_requests_from_attachments(node.get("attachments")),
            team_id=str(team["id"]) if team.get("id") else None,
            created_at=str(node.get("createdAt") or ""),
            updated_at=str(node.get("updatedAt") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ProjectData:
    id: str
    name: str
    url: str
    state: str = ""
    description: str | None = None
    lead: PersonRef | None = None
    progress: float | None = None
    start_date: str | None = None
    target_date: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> ProjectData:
        progress = node.get("progress")
        return cls(
            id=str(node.get("id", "")),
            name=str(node.get("name") or ""),
            url=str(node.get("url") or ""),
            state=str(node.get("state") or ""),
            description=node.get("description"),
            lead=PersonRef.from_api(node.get("lead")),
            progress=float(progress) if isinstance(progress, (int, float)) else None,
            start_date=node.get("startDate"),
            target_date=node.get("targetDate"),
            created_at=str(node.get("createdAt") or ""),
            updated_at=str(node.get("updatedAt") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ProjectIssueData:
    id: str
    identifier: str
    title: str
    url: str
    state: str = "Unknown"
    assignee: PersonRef | None = None
    priority: int | None = None
    due_date: str | None = None

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> ProjectIssueData:
        state = node.get("state") if isinstance(node.get("state"), dict) else {}
        priority = node.get("priority")
        return cls(
            id=str(node.get("id", "")),
            identifier=str(node.get("identifier", "")),
            title=str(node.get("title") or ""),
            url=str(node.get("url") or ""),
            state=str(state.get("name") or "Unknown"),
            assignee=PersonRef.from_api(node.get("assignee")),
            priority=int(priority) if isinstance(priority, (int, float)) else None,
            due_date=node.get("dueDate"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DocumentData:
    id: str
    title: str
    url: str
    content: str | None = None
    creator: PersonRef | None = None
    updated_by: PersonRef | None = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> DocumentData:
        return cls(
            id=str(node.get("id", "")),
            title=str(node.get("title") or ""),
            url=str(node.get("url") or ""),
            content=node.get("content"),
            creator=PersonRef.from_api(node.get("creator")),
            updated_by=PersonRef.from_api(node.get("updatedBy")),
            created_at=str(node.get("createdAt") or ""),
            updated_at=str(node.get("updatedAt") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ViewerData:
    id: str
    name: str
    email: str
    organization: str | None = None

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> ViewerData:
        org = node.get("organization")
        return cls(
            id=str(node.get("id", "")),
            name=str(node.get("name") or ""),
            email=str(node.get("email") or ""),
            organization=str(org.get("urlKey")) if isinstance(org, dict) and org.get("urlKey") else None,
        )


__all__ = [
    "CommentData",
    "DocumentData",
    "IssueData",
    "LabelRef",
    "PersonRef",
    "ProjectData",
    "ProjectIssueData",
    "PullRequestRef",
    "ViewerData",
    "pull_requests_from_attachments",
]
