"""Unit tests for the document entity and transition table."""

import pytest

from domain.entities.document import (
    ALLOWED_TRANSITIONS,
    Document,
    DocumentStatus,
    VersionBump,
    allowed_transitions,
    bump_version,
    is_allowed_transition,
    parse_version,
)
from domain.entities.workspace import Workspace


class TestTransitionTable:
    def test_every_status_has_an_entry(self) -> None:
        assert set(ALLOWED_TRANSITIONS) == set(DocumentStatus)

    def test_obsolete_is_terminal(self) -> None:
        assert allowed_transitions(DocumentStatus.OBSOLETE) == frozenset()

    def test_transition_matches_table(self) -> None:
        for current in DocumentStatus:
            for target in DocumentStatus:
                assert is_allowed_transition(current, target) == (
                    target in ALLOWED_TRANSITIONS[current]
                )

    def test_draft_cannot_skip_to_published(self) -> None:
        assert not is_allowed_transition(DocumentStatus.DRAFT, DocumentStatus.PUBLISHED)

    def test_rejected_returns_to_draft(self) -> None:
        assert allowed_transitions(DocumentStatus.REJECTED) == {DocumentStatus.DRAFT}


class TestVersion:
    @pytest.mark.parametrize(
        ("bump", "expected"),
        [
            (VersionBump.PATCH, "1.2.4"),
            (VersionBump.MINOR, "1.3.0"),
            (VersionBump.MAJOR, "2.0.0"),
        ],
    )
    def test_bump_resets_lower_components(self, bump: VersionBump, expected: str) -> None:
        assert bump_version("1.2.3", bump) == expected

    def test_default_bump_is_patch(self) -> None:
        assert bump_version("1.0.0") == "1.0.1"

    @pytest.mark.parametrize("version", ["1.0", "a.b.c", "1.0.0.0", "-1.0.0", ""])
    def test_parse_rejects_malformed(self, version: str) -> None:
        with pytest.raises(ValueError):
            parse_version(version)


class TestDocument:
    def test_new_document_is_editable_draft(self, actor_id) -> None:
        doc = Document(title="Minutes", workspace=Workspace.CAM, created_by=actor_id)

        assert doc.status is DocumentStatus.DRAFT
        assert doc.version == "1.0.0"
        assert doc.revision == 1
        assert doc.is_editable

    def test_rejected_is_editable(self, actor_id) -> None:
        doc = Document(
            title="Minutes",
            workspace=Workspace.CAM,
            created_by=actor_id,
            status=DocumentStatus.REJECTED,
        )
        assert doc.is_editable

    def test_under_review_is_not_editable(self, actor_id) -> None:
        doc = Document(
            title="Minutes",
            workspace=Workspace.CAM,
            created_by=actor_id,
            status=DocumentStatus.UNDER_REVIEW,
        )
        assert not doc.is_editable
