"""Document domain entity and workflow tables."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from domain.entities.workspace import Workspace


class DocumentStatus(StrEnum):
    """Lifecycle states of a document."""

    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    UNDER_REVIEW = "under_review"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    OBSOLETE = "obsolete"


class VersionBump(StrEnum):
    """Which component of a semantic version to increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


ALLOWED_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.DRAFT: frozenset({DocumentStatus.PENDING_REVIEW}),
    DocumentStatus.PENDING_REVIEW: frozenset(
        {DocumentStatus.UNDER_REVIEW, DocumentStatus.REJECTED}
    ),
    DocumentStatus.UNDER_REVIEW: frozenset(
        {DocumentStatus.PENDING_APPROVAL, DocumentStatus.REJECTED}
    ),
    DocumentStatus.PENDING_APPROVAL: frozenset(
        {DocumentStatus.APPROVED, DocumentStatus.REJECTED}
    ),
    DocumentStatus.APPROVED: frozenset({DocumentStatus.PUBLISHED, DocumentStatus.ARCHIVED}),
    DocumentStatus.REJECTED: frozenset({DocumentStatus.DRAFT}),
    DocumentStatus.PUBLISHED: frozenset({DocumentStatus.ARCHIVED, DocumentStatus.OBSOLETE}),
    DocumentStatus.ARCHIVED: frozenset({DocumentStatus.OBSOLETE}),
    DocumentStatus.OBSOLETE: frozenset(),
}

# Statuses in which the creator may act on the document without a role capability.
EDITABLE_STATUSES: frozenset[DocumentStatus] = frozenset(
    {DocumentStatus.DRAFT, DocumentStatus.REJECTED}
)

INITIAL_VERSION = "1.0.0"


def allowed_transitions(status: DocumentStatus) -> frozenset[DocumentStatus]:
    """Statuses reachable from ``status`` in a single step."""
    return ALLOWED_TRANSITIONS[status]


def is_allowed_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    """Check if ``target`` is a single allowed edge away from ``current``."""
    return target in ALLOWED_TRANSITIONS[current]


def parse_version(version: str) -> tuple[int, int, int]:
    """Parse a ``major.minor.patch`` string.

    Raises:
        ValueError: If the string is not three non-negative integers.
    """
    parts = version.split(".")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid version: {version!r}")
    major, minor, patch = (int(p) for p in parts)
    return major, minor, patch


def bump_version(version: str, bump: VersionBump = VersionBump.PATCH) -> str:
    """Increment one component of a semantic version, resetting lower ones."""
    major, minor, patch = parse_version(version)
    if bump is VersionBump.MAJOR:
        return f"{major + 1}.0.0"
    if bump is VersionBump.MINOR:
        return f"{major}.{minor + 1}.0"
    return f"{major}.{minor}.{patch + 1}"


@dataclass
class Document:
    """Domain entity for a managed document.

    ``version`` tracks content changes; ``revision`` is the optimistic
    concurrency token and increases on every write.
    """

    title: str
    workspace: Workspace
    created_by: UUID
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    status: DocumentStatus = DocumentStatus.DRAFT
    assigned_to: UUID | None = None
    version: str = INITIAL_VERSION
    revision: int = 1
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        """Ensure updated_at is always at least as recent as created_at."""
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES


@dataclass(frozen=True, slots=True)
class DocumentFilters:
    """Listing filters for ``list_documents``."""

    workspace: Workspace | None = None
    status: DocumentStatus | None = None
    created_by: UUID | None = None
    search: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = 20
    offset: int = 0
    sort_by: str = "created_at"
    sort_order: str = "desc"


@dataclass(frozen=True, slots=True)
class DocumentPage:
    items: list[Document]
    total: int
    has_more: bool
