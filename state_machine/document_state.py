"""Document state machine implementation using the transitions library."""

import logging
from decimal import Decimal
from typing import Any, Optional

from transitions import Machine, MachineError

from state_machine.errors import InvalidTransition
from state_machine.models import Document, DocumentStatus

logger = logging.getLogger(__name__)


class DocumentState(str):
    """Document state constants matching DocumentStatus enum."""

    DRAFT = DocumentStatus.DRAFT.value
    ISSUED = DocumentStatus.ISSUED.value
    PAID = DocumentStatus.PAID.value
    CANCELLED = DocumentStatus.CANCELLED.value

    @classmethod
    def all_states(cls) -> list[str]:
        """Return all valid states."""
        return [cls.DRAFT, cls.ISSUED, cls.PAID, cls.CANCELLED]

    @classmethod
    def reserved_states(cls) -> list[str]:
        """States declared for forward compatibility with no transitions yet."""
        return [cls.PAID, cls.CANCELLED]

    @classmethod
    def editable_states(cls) -> list[str]:
        return [cls.DRAFT]


class DocumentAction(str):
    """Actions accepted by the state machine."""

    CREATE = "create"
    UPDATE = "update"
    ISSUE = "issue"


INITIAL_STATE = DocumentState.DRAFT

# Every legal edge lives here. Reserved states have none.
TRANSITIONS: list[dict[str, Any]] = [
    {
        "trigger": DocumentAction.UPDATE,
        "source": DocumentState.DRAFT,
        "dest": DocumentState.DRAFT,
    },
    {
        "trigger": DocumentAction.ISSUE,
        "source": DocumentState.DRAFT,
        "dest": DocumentState.ISSUED,
        "conditions": "_issue_guard_passes",
    },
]


def next_state(
    state: Optional[str],
    action: str,
    document_id: Optional[int] = None,
) -> str:
    """
    Resolve the destination of ``action`` from ``state``.

    Pure lookup over TRANSITIONS; guard predicates are checked separately
    by issue_guard_failures().

    Raises:
        InvalidTransition: If no edge exists for (state, action).
    """
    if action == DocumentAction.CREATE:
        return INITIAL_STATE

    for transition in TRANSITIONS:
        if transition["trigger"] == action and transition["source"] == state:
            return transition["dest"]

    raise InvalidTransition(
        f"Cannot '{action}' a document in state '{state}'. "
        f"Available actions: {available_actions(state)}",
        current_state=state,
        attempted_action=action,
        document_id=document_id,
    )


def available_actions(state: str) -> list[str]:
    """Actions with an edge out of ``state``."""
    actions: list[str] = []
    for transition in TRANSITIONS:
        if transition["source"] == state and transition["trigger"] not in actions:
            actions.append(transition["trigger"])
    return actions


def issue_guard_failures(
    subtotal: Optional[Decimal],
    item_count: int,
    client_name: Optional[str],
) -> list[str]:
    """Return the failed issuance predicates; empty means the guard passes."""
    failures = []
    if subtotal is None or subtotal <= Decimal("0"):
        failures.append("subtotal must be greater than zero")
    if item_count < 1:
        failures.append("at least one line item is required")
    if client_name is None or not client_name.strip():
        failures.append("client name is required")
    return failures


class DocumentFSM:
    """
    Finite State Machine for a single document.

    States:
        - DRAFT: initial state, the only editable one
        - ISSUED: issued with a permanent external folio
        - PAID, CANCELLED: reserved, no transitions

    Transitions:
        - update: DRAFT -> DRAFT
        - issue: DRAFT -> ISSUED (subtotal > 0, has items, client name set)
    """

    def __init__(
        self,
        document_id: int,
        initial_state: str = INITIAL_STATE,
        subtotal: Decimal = Decimal("0"),
        item_count: int = 0,
        client_name: str = "",
    ):
        """
        Initialize the document state machine.

        Args:
            document_id: Identifier of the document
            initial_state: Starting state (default: DRAFT)
            subtotal: Current subtotal, used by the issue guard
            item_count: Current number of line items, used by the issue guard
            client_name: Current client name, used by the issue guard
        """
        if initial_state not in DocumentState.all_states():
            raise ValueError(f"Invalid initial state: {initial_state}")

        self.document_id = document_id
        self.subtotal = subtotal
        self.item_count = item_count
        self.client_name = client_name

        self.machine = Machine(
            model=self,
            states=DocumentState.all_states(),
            transitions=TRANSITIONS,
            initial=initial_state,
            auto_transitions=False,
            send_event=True,
            after_state_change=self._after_transition,
        )

    @classmethod
    def for_document(cls, document: Document) -> "DocumentFSM":
        """Build a machine positioned at the document's stored status."""
        return cls(
            document_id=document.id,
            initial_state=document.status.value,
            subtotal=document.subtotal,
            item_count=len(document.items),
            client_name=document.client_name,
        )

    @property
    def current_state(self) -> str:
        """Get the current state."""
        return self.state  # type: ignore[return-value]

    @property
    def is_editable(self) -> bool:
        return self.current_state in DocumentState.editable_states()

    def guard_failures(self) -> list[str]:
        return issue_guard_failures(self.subtotal, self.item_count, self.client_name)

    def _issue_guard_passes(self, event: Any) -> bool:
        return not self.guard_failures()

    def _after_transition(self, event: Any) -> None:
        logger.info(
            f"Document {self.document_id}: '{event.event.name}' "
            f"{event.transition.source} -> {event.transition.dest}"
        )

    def trigger(self, action: str, **kwargs: Any) -> str:
        """
        Execute a state transition.

        Args:
            action: Name of the action to execute
            **kwargs: Additional arguments passed to transition callbacks

        Returns:
            The new state

        Raises:
            InvalidTransition: If the action has no edge from the current
                state or its guard fails
        """
        next_state(self.current_state, action, self.document_id)

        if action == DocumentAction.ISSUE:
            failures = self.guard_failures()
            if failures:
                raise InvalidTransition(
                    f"Document {self.document_id} cannot be issued: "
                    + ", ".join(failures),
                    current_state=self.current_state,
                    attempted_action=action,
                    document_id=self.document_id,
                    failed_guards=failures,
                )

        previous_state = self.current_state
        try:
            executed = getattr(self, action)(**kwargs)
        except MachineError as e:
            raise InvalidTransition(
                str(e),
                current_state=previous_state,
                attempted_action=action,
                document_id=self.document_id,
            ) from e

        if not executed:
            raise InvalidTransition(
                f"Action '{action}' was rejected from state '{previous_state}'",
                current_state=previous_state,
                attempted_action=action,
                document_id=self.document_id,
            )
        return self.current_state

    def ensure_editable(self) -> None:
        """Raise InvalidTransition unless the document may be edited."""
        next_state(self.current_state, DocumentAction.UPDATE, self.document_id)

    def __repr__(self) -> str:
        return f"DocumentFSM(document_id={self.document_id!r}, state={self.current_state!r})"
