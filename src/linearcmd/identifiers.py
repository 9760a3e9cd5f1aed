"""Parsing of user-supplied entity references and branch name derivation.

An entity may be referenced either by a bare identifier or by a URL copied
from the Linear web app::

    WAY-123
    https://linear.app/waytech/issue/WAY-123/fix-login
    https://linear.app/waytech/project/q3-roadmap-3f2a1b4c5d6e/overview
    https://linear.app/waytech/document/release-notes-0a1b2c3d4e5f

Only URLs carry a workspace slug; bare identifiers leave it unset, which makes
the resolver probe every configured account.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

from .errors import InvalidIdentifierError

BRANCH_SLUG_MAX = 50

_ISSUE_ID_RE = re.compile(r"^[A-Z][A-Z0-9]*-\d+$")
_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_SLUG_ID_SUFFIX_RE = re.compile(r"(?:^|-)([0-9a-f]{12})$")
_HOST_PREFIX_RE = re.compile(r"^[\w-]+(?:\.[\w-]+)+/")
_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


class EntityKind(str, Enum):
    ISSUE = "issue"
    PROJECT = "project"
    DOCUMENT = "document"


_URL_KEYWORDS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.ISSUE: ("issue",),
    EntityKind.PROJECT: ("project",),
    EntityKind.DOCUMENT: ("document", "doc"),
}


@dataclass(frozen=True)
class ParsedIdentifier:
    kind: EntityKind
    workspace: str | None
    entity_id: str


def _url_segments(text: str) -> list[str] | None:
    candidate = text
    if "://" not in candidate:
        if not _HOST_PREFIX_RE.match(candidate):
            return None
        candidate = "https://" + candidate
    parts = urlsplit(candidate)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return [seg for seg in parts.path.split("/") if seg]


def _workspace_and_segment(segments: list[str], kind: EntityKind) -> tuple[str, str] | None:
    keywords = _URL_KEYWORDS[kind]
    for i in range(1, len(segments) - 1):
        if segments[i] in keywords:
            return segments[i - 1], segments[i + 1]
    return None


def _slug_entity_id(value: str) -> str:
    if _UUID_RE.match(value):
        return value
    m = _SLUG_ID_SUFFIX_RE.search(value)
    return m.group(1) if m else value


def parse_issue_identifier(text: str) -> ParsedIdentifier:
    raw = (text or "").strip()
    if not raw:
        raise InvalidIdentifierError(text, EntityKind.ISSUE.value)
    if _ISSUE_ID_RE.match(raw):
        return ParsedIdentifier(EntityKind.ISSUE, None, raw)
    segments = _url_segments(raw)
    if segments:
        found = _workspace_and_segment(segments, EntityKind.ISSUE)
        if found and _ISSUE_ID_RE.match(found[1]):
            return ParsedIdentifier(EntityKind.ISSUE, found[0], found[1])
    raise InvalidIdentifierError(text, EntityKind.ISSUE.value)


def _parse_slugged(text: str, kind: EntityKind) -> ParsedIdentifier:
    raw = (text or "").strip()
    if not raw:
        raise InvalidIdentifierError(text, kind.value)
    if _UUID_RE.match(raw) or _SLUG_RE.match(raw):
        return ParsedIdentifier(kind, None, _slug_entity_id(raw))
    segments = _url_segments(raw)
    if segments:
        found = _workspace_and_segment(segments, kind)
        if found and (_UUID_RE.match(found[1]) or _SLUG_RE.match(found[1])):
            return ParsedIdentifier(kind, found[0], _slug_entity_id(found[1]))
    raise InvalidIdentifierError(text, kind.value)


def parse_project_identifier(text: str) -> ParsedIdentifier:
    return _parse_slugged(text, EntityKind.PROJECT)


def parse_document_identifier(text: str) -> ParsedIdentifier:
    return _parse_slugged(text, EntityKind.DOCUMENT)


def parse_identifier(text: str, kind: EntityKind = EntityKind.ISSUE) -> ParsedIdentifier:
    if kind is EntityKind.ISSUE:
        return parse_issue_identifier(text)
    return _parse_slugged(text, kind)


def derive_branch_name(identifier: str, title: str) -> str:
    """Suggested git branch for an issue, e.g. ``way-123/fix-login-crash``.

    The title slug is cut to ``BRANCH_SLUG_MAX`` characters after slugifying,
    and any hyphen left dangling by the cut is removed.
    """
    slug = _NON_SLUG_RE.sub("-", (title or "").lower()).strip("-")
    slug = slug[:BRANCH_SLUG_MAX].rstrip("-")
    prefix = identifier.lower()
    return f"{prefix}/{slug}" if slug else prefix


__all__ = [
    "BRANCH_SLUG_MAX",
    "EntityKind",
    "ParsedIdentifier",
    "derive_branch_name",
    "parse_document_identifier",
    "parse_identifier",
    "parse_issue_identifier",
    "parse_project_identifier",
]
