"""Tests for ConversationLedger service."""

import pytest

from officeflow.models.artifact import Artifact
from officeflow.models.conversation import ConversationPhase, IntentType, SpeakerRole
from officeflow.services.conversation_ledger import ConversationLedger, TRANSITIONS
from officeflow.services.errors import ConversationNotFoundError, InvalidTransitionError


@pytest.fixture
def ledger():
    return ConversationLedger()


def _walk_to(ledger, conversation, *phases):
    for phase in phases:
        ledger.set_phase(conversation, phase)


class TestStart:
    """SUT: ConversationLedger.start"""

    def test_creates_active_conversation(self, ledger):
        """New conversation is gathering, unknown intent, with the first message recorded."""
        conv = ledger.start("chat-1", "hello there")
        assert conv.phase == ConversationPhase.GATHERING
        assert conv.intent == IntentType.UNKNOWN
        assert conv.collected_fields == {}
        assert conv.messages[0].role == SpeakerRole.USER
        assert conv.messages[0].content == "hello there"
        assert ledger.get_active("chat-1") is conv

    def test_refuses_second_active(self, ledger):
        """An owner has at most one non-complete conversation."""
        ledger.start("chat-1", "first")
        with pytest.raises(InvalidTransitionError):
            ledger.start("chat-1", "second")

    def test_other_owner_independent(self, ledger):
        a = ledger.start("chat-1", "a")
        b = ledger.start("chat-2", "b")
        assert a.id != b.id
        assert ledger.get_active("chat-2") is b

    def test_start_after_complete(self, ledger):
        """Completing frees the owner slot for a new conversation."""
        conv = ledger.start("chat-1", "x")
        _walk_to(
            ledger, conv,
            ConversationPhase.PROCESSING, ConversationPhase.GENERATING,
            ConversationPhase.REVIEW, ConversationPhase.COMPLETE
        )
        assert ledger.get_active("chat-1") is None
        newer = ledger.start("chat-1", "y")
        assert newer.id != conv.id


class TestLookup:
    """SUT: ConversationLedger.get / list"""

    def test_get_unknown(self, ledger):
        with pytest.raises(ConversationNotFoundError):
            ledger.get("missing")

    def test_find_unknown(self, ledger):
        assert ledger.find("missing") is None

    def test_list_filters(self, ledger):
        a = ledger.start("chat-1", "a")
        ledger.start("chat-2", "b")
        ledger.set_phase(a, ConversationPhase.PROCESSING)

        assert [c.id for c in ledger.list(owner_key="chat-1")] == [a.id]
        assert [c.id for c in ledger.list(phase=ConversationPhase.PROCESSING)] == [a.id]
        assert len(ledger.list()) == 2


class TestSetIntent:
    """SUT: ConversationLedger.set_intent"""

    def test_fixes_required_fields(self, ledger):
        conv = ledger.start("chat-1", "newsletter please")
        assert ledger.set_intent(conv, IntentType.NEWSLETTER) is True
        assert conv.required_fields == ["topic", "audience", "tone"]

    def test_set_once(self, ledger):
        """Once recognized, the intent and its required fields never change."""
        conv = ledger.start("chat-1", "newsletter please")
        ledger.set_intent(conv, IntentType.NEWSLETTER)
        assert ledger.set_intent(conv, IntentType.RESEARCH) is False
        assert conv.intent == IntentType.NEWSLETTER
        assert conv.required_fields == ["topic", "audience", "tone"]

    def test_unknown_does_not_stick(self, ledger):
        conv = ledger.start("chat-1", "hmm")
        assert ledger.set_intent(conv, IntentType.UNKNOWN) is False
        assert ledger.set_intent(conv, IntentType.RESEARCH) is True
        assert conv.required_fields == ["topic", "scope"]


class TestMergeFields:
    """SUT: ConversationLedger.merge_fields"""

    def test_adds_and_overwrites(self, ledger):
        conv = ledger.start("chat-1", "x")
        ledger.merge_fields(conv, {"topic": "AI", "audience": "devs"})
        changed = ledger.merge_fields(conv, {"topic": "AI trends"})
        assert changed == {"topic": "AI trends"}
        assert conv.collected_fields == {"topic": "AI trends", "audience": "devs"}

    def test_never_deletes(self, ledger):
        """Empty or missing values leave existing fields alone."""
        conv = ledger.start("chat-1", "x")
        ledger.merge_fields(conv, {"topic": "AI", "tone": "casual"})
        changed = ledger.merge_fields(conv, {"topic": "", "tone": None, "audience": "   "})
        assert changed == {}
        assert conv.collected_fields == {"topic": "AI", "tone": "casual"}

    def test_fields_only_grow(self, ledger):
        """Keys present before any merge stay present after it."""
        conv = ledger.start("chat-1", "x")
        batches = [{"topic": "a"}, {"audience": "b"}, {}, {"topic": "c", "tone": "d"}, {"audience": ""}]
        seen = set()
        for batch in batches:
            ledger.merge_fields(conv, batch)
            assert seen <= set(conv.collected_fields)
            seen = set(conv.collected_fields)
        assert conv.collected_fields == {"topic": "c", "audience": "b", "tone": "d"}

    def test_values_are_strings(self, ledger):
        conv = ledger.start("chat-1", "x")
        ledger.merge_fields(conv, {"topic": " AI ", "count": 3})
        assert conv.collected_fields == {"topic": "AI", "count": "3"}


class TestSetPhase:
    """SUT: ConversationLedger.set_phase"""

    @pytest.mark.parametrize("current", list(ConversationPhase))
    def test_only_allowed_edges(self, ledger, current):
        """Every edge outside the state machine is refused."""
        for target in ConversationPhase:
            conv = ledger.start(f"chat-{current.value}-{target.value}", "x")
            conv.phase = current
            if target in TRANSITIONS[current]:
                ledger.set_phase(conv, target)
                assert conv.phase == target
            else:
                with pytest.raises(InvalidTransitionError):
                    ledger.set_phase(conv, target)
                assert conv.phase == current

    def test_complete_is_terminal(self, ledger):
        conv = ledger.start("chat-1", "x")
        _walk_to(
            ledger, conv,
            ConversationPhase.PROCESSING, ConversationPhase.GENERATING,
            ConversationPhase.REVIEW, ConversationPhase.COMPLETE
        )
        with pytest.raises(InvalidTransitionError):
            ledger.add_message(conv, SpeakerRole.USER, "more")
        with pytest.raises(InvalidTransitionError):
            ledger.merge_fields(conv, {"topic": "x"})


class TestAssignAndResult:
    """SUT: ConversationLedger.assign / attach_result"""

    def test_assign_requires_generating(self, ledger):
        conv = ledger.start("chat-1", "x")
        with pytest.raises(InvalidTransitionError):
            ledger.assign(conv, "copywriter")

    def test_no_reassignment(self, ledger):
        """A conversation bound to one worker is never handed to another."""
        conv = ledger.start("chat-1", "x")
        _walk_to(ledger, conv, ConversationPhase.PROCESSING, ConversationPhase.GENERATING)
        ledger.assign(conv, "copywriter")
        ledger.assign(conv, "copywriter")
        with pytest.raises(InvalidTransitionError):
            ledger.assign(conv, "researcher")
        assert conv.assigned_to == "copywriter"

    def test_attach_result_moves_to_review(self, ledger):
        conv = ledger.start("chat-1", "x")
        _walk_to(ledger, conv, ConversationPhase.PROCESSING, ConversationPhase.GENERATING)
        artifact = Artifact(conversation_id=conv.id, title="T", body="B", created_by="copywriter")
        ledger.attach_result(conv, artifact)
        assert conv.phase == ConversationPhase.REVIEW
        assert conv.result.id == artifact.id
