"""
Region lifecycle state management for VocabWeave.

Every text container the scheduler learns about is tracked with an explicit
state instead of ad-hoc flags, so the drain loop can reason about which
containers are still worth resolving.

Architecture:
    RegionState (Enum) → WHERE the container is in the scheduling pipeline
    SkipReason (Dataclass) → WHY a claimed container was not resolved
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal


class RegionState(str, Enum):
    """
    Lifecycle state of a text container.

    State Transition Flow:
        UNSEEN → OBSERVING → PENDING → PROCESSING → PROCESSED

    PROCESSED is terminal until a restore-all returns the container to UNSEEN.
    A container that is claimed but skipped falls back to OBSERVING so a later
    visibility signal can queue it again.
    """

    UNSEEN = "unseen"
    """The container has not been registered for visibility tracking."""

    OBSERVING = "observing"
    """The container is tracked and waits to enter the viewport window."""

    PENDING = "pending"
    """The container entered the viewport window and is queued for a drain."""

    PROCESSING = "processing"
    """A drain cycle claimed the container and is resolving its text."""

    PROCESSED = "processed"
    """The container's fingerprint was recorded; it is never revisited."""


_TRANSITIONS: dict[RegionState, frozenset[RegionState]] = {
    RegionState.UNSEEN: frozenset({RegionState.OBSERVING, RegionState.PENDING}),
    RegionState.OBSERVING: frozenset({RegionState.PENDING}),
    RegionState.PENDING: frozenset({RegionState.PROCESSING}),
    RegionState.PROCESSING: frozenset({RegionState.PROCESSED, RegionState.OBSERVING}),
    RegionState.PROCESSED: frozenset(),
}


def can_transition(current: RegionState, target: RegionState) -> bool:
    """Check whether moving from `current` to `target` is a legal transition."""
    return target in _TRANSITIONS[current]


@dataclass(frozen=True)
class SkipReason:
    """
    Why a claimed container was not handed to the orchestrator.

    Attributes:
        category: The high-level category of the skip reason.
        code: A machine-readable identifier for the specific reason.
        message: A human-readable explanation (optional, for logging/debugging).

    """

    category: Literal["validation", "optimization", "rule"]
    code: str
    message: str | None = None

    def __str__(self) -> str:
        """Return a human-readable representation of the skip reason."""
        if self.message:
            return f"{self.category}:{self.code} ({self.message})"
        return f"{self.category}:{self.code}"


SKIP_ALREADY_PROCESSED = SkipReason(
    category="optimization",
    code="processed",
    message="Container carries the processed marker",
)

SKIP_KNOWN_FINGERPRINT = SkipReason(
    category="optimization",
    code="fingerprint",
    message="Fingerprint already recorded as processed",
)

SKIP_TOO_SHORT = SkipReason(
    category="validation",
    code="too_short",
    message="Extracted text is below the minimum segment length",
)

SKIP_CODE_LIKE = SkipReason(
    category="validation",
    code="code_like",
    message="Extracted text looks like source code or a URL",
)

SKIP_LEARNED_ONLY = SkipReason(
    category="rule",
    code="learned_only",
    message="Too little text remains after masking learned words",
)

SKIP_DETACHED = SkipReason(
    category="validation",
    code="detached",
    message="Container was removed from the document",
)
