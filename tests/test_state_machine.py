"""Tests for the document state machine."""

from decimal import Decimal

import pytest

from state_machine.document_state import (
    TRANSITIONS,
    DocumentAction,
    DocumentFSM,
    DocumentState,
    available_actions,
    issue_guard_failures,
    next_state,
)
from state_machine.errors import InvalidTransition


def issuable_fsm(document_id: int = 1) -> DocumentFSM:
    return DocumentFSM(
        document_id=document_id,
        subtotal=Decimal("25.00"),
        item_count=2,
        client_name="Acme",
    )


class TestTransitionTable:
    """Test the pure transition function."""

    def test_create_yields_draft(self) -> None:
        assert next_state(None, DocumentAction.CREATE) == DocumentState.DRAFT

    def test_issue_from_draft(self) -> None:
        assert next_state(DocumentState.DRAFT, DocumentAction.ISSUE) == DocumentState.ISSUED

    def test_update_keeps_draft(self) -> None:
        assert next_state(DocumentState.DRAFT, DocumentAction.UPDATE) == DocumentState.DRAFT

    @pytest.mark.parametrize(
        "state",
        [DocumentState.ISSUED, DocumentState.PAID, DocumentState.CANCELLED],
    )
    def test_no_edits_outside_draft(self, state: str) -> None:
        with pytest.raises(InvalidTransition) as exc_info:
            next_state(state, DocumentAction.UPDATE, document_id=7)

        assert exc_info.value.current_state == state
        assert exc_info.value.attempted_action == "update"
        assert exc_info.value.document_id == 7

    def test_issue_twice_is_invalid(self) -> None:
        with pytest.raises(InvalidTransition):
            next_state(DocumentState.ISSUED, DocumentAction.ISSUE)

    def test_reserved_states_have_no_edges(self) -> None:
        for state in DocumentState.reserved_states():
            assert available_actions(state) == []
        assert all(t["source"] not in DocumentState.reserved_states() for t in TRANSITIONS)
        assert all(t["dest"] not in DocumentState.reserved_states() for t in TRANSITIONS)

    def test_unknown_action(self) -> None:
        with pytest.raises(InvalidTransition):
            next_state(DocumentState.DRAFT, "pay")


class TestIssueGuard:
    """Test issuance guard predicates."""

    def test_guard_passes(self) -> None:
        assert issue_guard_failures(Decimal("1.00"), 1, "Acme") == []

    def test_zero_subtotal(self) -> None:
        assert issue_guard_failures(Decimal("0"), 1, "Acme") == [
            "subtotal must be greater than zero"
        ]

    def test_no_items(self) -> None:
        assert issue_guard_failures(Decimal("1"), 0, "Acme") == [
            "at least one line item is required"
        ]

    def test_blank_client_name(self) -> None:
        assert issue_guard_failures(Decimal("1"), 1, "   ") == ["client name is required"]

    def test_collects_every_failure(self) -> None:
        assert len(issue_guard_failures(None, 0, None)) == 3


class TestDocumentFSM:
    """Test suite for DocumentFSM."""

    def test_initial_state(self) -> None:
        fsm = DocumentFSM(document_id=1)
        assert fsm.current_state == DocumentState.DRAFT
        assert fsm.is_editable

    def test_invalid_initial_state(self) -> None:
        with pytest.raises(ValueError, match="Invalid initial state"):
            DocumentFSM(document_id=1, initial_state="ARCHIVED")

    def test_issue(self) -> None:
        fsm = issuable_fsm()

        assert fsm.trigger(DocumentAction.ISSUE) == DocumentState.ISSUED
        assert not fsm.is_editable

    def test_update_from_draft(self) -> None:
        fsm = issuable_fsm()

        assert fsm.trigger(DocumentAction.UPDATE) == DocumentState.DRAFT

    def test_issue_blocked_by_guard(self) -> None:
        fsm = DocumentFSM(document_id=3, subtotal=Decimal("0"), item_count=0, client_name="")

        with pytest.raises(InvalidTransition) as exc_info:
            fsm.trigger(DocumentAction.ISSUE)

        assert exc_info.value.failed_guards == issue_guard_failures(Decimal("0"), 0, "")
        assert fsm.current_state == DocumentState.DRAFT

    def test_issue_twice(self) -> None:
        fsm = issuable_fsm()
        fsm.trigger(DocumentAction.ISSUE)

        with pytest.raises(InvalidTransition):
            fsm.trigger(DocumentAction.ISSUE)
        assert fsm.current_state == DocumentState.ISSUED

    def test_ensure_editable_on_issued(self) -> None:
        fsm = DocumentFSM(document_id=1, initial_state=DocumentState.ISSUED)

        with pytest.raises(InvalidTransition):
            fsm.ensure_editable()

    def test_reserved_state_is_frozen(self) -> None:
        fsm = DocumentFSM(document_id=1, initial_state=DocumentState.CANCELLED)

        for action in (DocumentAction.UPDATE, DocumentAction.ISSUE):
            with pytest.raises(InvalidTransition):
                fsm.trigger(action)

    def test_error_serializes(self) -> None:
        fsm = DocumentFSM(document_id=9, initial_state=DocumentState.ISSUED)

        with pytest.raises(InvalidTransition) as exc_info:
            fsm.trigger(DocumentAction.UPDATE)

        payload = exc_info.value.to_dict()
        assert payload["code"] == "INVALID_TRANSITION"
        assert payload["current_state"] == "ISSUED"
        assert payload["document_id"] == 9
        assert payload["retryable"] is False
