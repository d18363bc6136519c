"""Outcome classification for a single TTL defaulting decision."""

from enum import Enum


class DefaultingOutcome(str, Enum):
    """
    What one decision call did.  Exactly one per call, never combined.

    PATCHED, ALREADY_SET and SKIPPED are successful results.  DENIED is the
    only outcome that carries an error.
    """

    PATCHED = "patched"          # TTL set (or overwritten) to the target
    ALREADY_SET = "already_set"  # TTL already equal to the target
    SKIPPED = "skipped"          # Job outside the selector scope
    DENIED = "denied"            # Selector malformed; request must be rejected

    @property
    def mutated(self) -> bool:
        return self is DefaultingOutcome.PATCHED

    @property
    def is_error(self) -> bool:
        return self is DefaultingOutcome.DENIED
