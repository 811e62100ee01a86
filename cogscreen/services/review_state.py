"""Clinical review state machine.

The transition tables below are the only place allowed status moves are
defined. Every service that changes ``Assessment.status`` asks the machine
first.

    draft -> submitted -> under_review -> completed -> archived
                              ^   |           |
                              +---+           |
                              +----reopen-----+

``under_review -> under_review`` is a partial save. ``completed ->
under_review`` is only reachable through the explicit reopen action, which
requires a reason and is audited.
"""

from dataclasses import dataclass

from cogscreen.core.errors import IncompleteReviewError, InvalidTransitionError
from cogscreen.models.assessment import AssessmentStatus

S = AssessmentStatus

TRANSITIONS: dict[AssessmentStatus, frozenset[AssessmentStatus]] = {
    S.DRAFT: frozenset({S.SUBMITTED}),
    S.SUBMITTED: frozenset({S.UNDER_REVIEW}),
    S.UNDER_REVIEW: frozenset({S.UNDER_REVIEW, S.COMPLETED}),
    S.COMPLETED: frozenset({S.ARCHIVED}),
    S.ARCHIVED: frozenset(),
}

REOPEN_TRANSITIONS: dict[AssessmentStatus, frozenset[AssessmentStatus]] = {
    S.COMPLETED: frozenset({S.UNDER_REVIEW}),
}

# Statuses in which review fields (notes, score, recommendations) may change
REVIEW_WRITABLE = frozenset({S.SUBMITTED, S.UNDER_REVIEW})


@dataclass(frozen=True)
class Transition:
    """A validated status move."""

    current: AssessmentStatus
    requested: AssessmentStatus
    reopen: bool = False

    @property
    def completes_review(self) -> bool:
        return self.requested == S.COMPLETED

    @property
    def starts_review(self) -> bool:
        return self.current == S.SUBMITTED and self.requested == S.UNDER_REVIEW


class ReviewStateMachine:
    """Validates status moves against the transition tables."""

    def __init__(
        self,
        transitions: dict[AssessmentStatus, frozenset[AssessmentStatus]] = TRANSITIONS,
        reopen_transitions: dict[AssessmentStatus, frozenset[AssessmentStatus]] = REOPEN_TRANSITIONS,
    ) -> None:
        self.transitions = transitions
        self.reopen_transitions = reopen_transitions

    def allowed(
        self,
        current: AssessmentStatus | str,
        reopen: bool = False,
    ) -> frozenset[AssessmentStatus]:
        """Statuses reachable from ``current``."""
        table = self.reopen_transitions if reopen else self.transitions
        return table.get(AssessmentStatus(current), frozenset())

    def can_transition(
        self,
        current: AssessmentStatus | str,
        requested: AssessmentStatus | str,
        reopen: bool = False,
    ) -> bool:
        return AssessmentStatus(requested) in self.allowed(current, reopen)

    def validate(
        self,
        current: AssessmentStatus | str,
        requested: AssessmentStatus | str,
        review_notes: str | None = None,
        reopen: bool = False,
    ) -> Transition:
        """Check a status move and its preconditions.

        Raises:
            InvalidTransitionError: If the move is not in the table
            IncompleteReviewError: If completing without review notes
        """
        current = AssessmentStatus(current)
        requested = AssessmentStatus(requested)

        if not self.can_transition(current, requested, reopen):
            raise InvalidTransitionError(current.value, requested.value)

        transition = Transition(current=current, requested=requested, reopen=reopen)
        if transition.completes_review and not (review_notes and review_notes.strip()):
            raise IncompleteReviewError()

        return transition


def is_review_writable(status: AssessmentStatus | str) -> bool:
    """Whether review fields may be changed in this status."""
    return AssessmentStatus(status) in REVIEW_WRITABLE


review_state_machine = ReviewStateMachine()
