"""Tests for ArtifactLedger service."""

import pytest

from officeflow.models.artifact import Artifact, ArtifactStatus
from officeflow.services.artifact_ledger import ArtifactLedger
from officeflow.services.errors import ArtifactNotFoundError, ArtifactStateError


@pytest.fixture
def ledger():
    return ArtifactLedger()


def _artifact(**overrides):
    data = dict(conversation_id="conv-1", title="Newsletter: AI", body="# AI", created_by="copywriter")
    data.update(overrides)
    return Artifact(**data)


class TestStoreFetch:
    """SUT: ArtifactLedger.store / fetch"""

    def test_store_then_fetch(self, ledger):
        artifact = ledger.store(_artifact())
        fetched = ledger.fetch(artifact.id)
        assert fetched.title == "Newsletter: AI"
        assert fetched.status == ArtifactStatus.PENDING_REVIEW

    def test_fetch_unknown(self, ledger):
        with pytest.raises(ArtifactNotFoundError):
            ledger.fetch("nope")

    def test_restore_draft_replaces(self, ledger):
        first = ledger.store(_artifact(id="a1", status=ArtifactStatus.DRAFT))
        ledger.store(_artifact(id=first.id, title="Updated"))
        assert ledger.fetch("a1").title == "Updated"

    def test_pending_artifact_not_replaced(self, ledger):
        ledger.store(_artifact(id="a1"))
        with pytest.raises(ArtifactStateError):
            ledger.store(_artifact(id="a1", title="Swapped"))
        assert ledger.fetch("a1").title == "Newsletter: AI"

    def test_draft_stays_in_its_conversation(self, ledger):
        ledger.store(_artifact(id="a1", status=ArtifactStatus.DRAFT))
        with pytest.raises(ArtifactStateError):
            ledger.store(_artifact(id="a1", conversation_id="conv-2"))
        assert ledger.fetch("a1").conversation_id == "conv-1"

    def test_draft_cannot_jump_to_approved(self, ledger):
        ledger.store(_artifact(id="a1", status=ArtifactStatus.DRAFT))
        with pytest.raises(ArtifactStateError):
            ledger.store(_artifact(id="a1", status=ArtifactStatus.APPROVED))
        assert ledger.fetch("a1").status == ArtifactStatus.DRAFT

    def test_reviewed_artifact_frozen(self, ledger):
        ledger.store(_artifact(id="a1"))
        ledger.approve("a1")
        with pytest.raises(ArtifactStateError):
            ledger.store(_artifact(id="a1", title="Sneaky"))
        assert ledger.fetch("a1").status == ArtifactStatus.APPROVED

    def test_list_by_conversation(self, ledger):
        ledger.store(_artifact(id="a1"))
        ledger.store(_artifact(id="a2", conversation_id="conv-2"))
        assert [a.id for a in ledger.list("conv-2")] == ["a2"]
        assert len(ledger.list()) == 2


class TestApprove:
    """SUT: ArtifactLedger.approve"""

    def test_approve(self, ledger):
        ledger.store(_artifact(id="a1"))
        assert ledger.approve("a1") is True
        assert ledger.fetch("a1").status == ArtifactStatus.APPROVED

    def test_idempotent(self, ledger):
        ledger.store(_artifact(id="a1"))
        ledger.approve("a1")
        assert ledger.approve("a1") is False
        assert ledger.fetch("a1").status == ArtifactStatus.APPROVED

    def test_rejected_cannot_be_approved(self, ledger):
        ledger.store(_artifact(id="a1"))
        ledger.reject("a1", "too long")
        with pytest.raises(ArtifactStateError):
            ledger.approve("a1")

    def test_unknown(self, ledger):
        with pytest.raises(ArtifactNotFoundError):
            ledger.approve("nope")


class TestReject:
    """SUT: ArtifactLedger.reject"""

    def test_keeps_feedback(self, ledger):
        ledger.store(_artifact(id="a1"))
        ledger.reject("a1", "  make it shorter ")
        artifact = ledger.fetch("a1")
        assert artifact.status == ArtifactStatus.REJECTED
        assert artifact.feedback == "make it shorter"

    @pytest.mark.parametrize("feedback", ["", "   ", None])
    def test_empty_feedback_refused(self, ledger, feedback):
        """Empty feedback changes nothing."""
        ledger.store(_artifact(id="a1"))
        with pytest.raises(ValueError):
            ledger.reject("a1", feedback)
        assert ledger.fetch("a1").status == ArtifactStatus.PENDING_REVIEW

    def test_reject_twice(self, ledger):
        ledger.store(_artifact(id="a1"))
        ledger.reject("a1", "no")
        with pytest.raises(ArtifactStateError):
            ledger.reject("a1", "still no")
        assert ledger.fetch("a1").feedback == "no"

    def test_approved_cannot_be_rejected(self, ledger):
        ledger.store(_artifact(id="a1"))
        ledger.approve("a1")
        with pytest.raises(ArtifactStateError):
            ledger.reject("a1", "changed my mind")
