"""
TTL Defaulter -- the admission-time TTL decision table.

Responsibility:
    Decides, for one admitted Job, whether ``ttlSecondsAfterFinished`` must
    be injected, and classifies the call into exactly one outcome.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Called by services.job_defaulter.JobTTLDefaulter, which owns logging and
    outcome recording.

Decision table (first match wins):
    1. selector non-empty and malformed       -> DENIED, workload untouched
    2. selector non-empty and does not match  -> SKIPPED, workload untouched
    3. TTL present and equal to the target    -> ALREADY_SET, untouched
    4. otherwise                              -> PATCHED, TTL := target

Invariants enforced:
    - Selector scoping runs before any mutation is considered, so Jobs
      outside the scope are never touched even when their TTL differs.
    - Idempotence: a PATCHED workload fed back with the same policy yields
      ALREADY_SET.
    - Every non-PATCHED decision returns the exact input instance.

Failure modes:
    - Never raises for a malformed selector; the DENIED decision carries the
      LabelSelectorParseError and the caller decides how to surface it.
    - InvalidTargetTTLError when a DefaultingPolicy is built with a
      non-positive or non-integer target.
"""

from __future__ import annotations

from dataclasses import dataclass

from jobttl_kernel.domain.label_selector import MATCH_EVERYTHING, matches
from jobttl_kernel.domain.outcome import DefaultingOutcome
from jobttl_kernel.domain.workload import Workload
from jobttl_kernel.exceptions import InvalidTargetTTLError, LabelSelectorParseError

DEFAULT_TARGET_TTL_SECONDS = 3600


@dataclass(frozen=True, slots=True)
class DefaultingPolicy:
    """
    Immutable process-wide defaulting configuration.

    Contract:
        ``target_ttl`` is a positive integer number of seconds.
        ``label_selector`` is selector text; "" disables scoping.
    """

    target_ttl: int = DEFAULT_TARGET_TTL_SECONDS
    label_selector: str = MATCH_EVERYTHING

    def __post_init__(self) -> None:
        ttl = self.target_ttl
        if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
            raise InvalidTargetTTLError(ttl)
        if not isinstance(self.label_selector, str):
            raise TypeError(
                f"label_selector must be a string, got {type(self.label_selector).__name__}"
            )

    @property
    def selector_enabled(self) -> bool:
        return self.label_selector != MATCH_EVERYTHING


@dataclass(frozen=True, slots=True)
class DefaultingDecision:
    """
    Result of one pass through the decision table.

    ``workload`` is the input instance unless the outcome is PATCHED.
    ``selector_matched`` is True only when a non-empty selector was
    evaluated and matched.  ``error`` is set only for DENIED.
    """

    workload: Workload
    outcome: DefaultingOutcome
    selector_matched: bool = False
    previous_ttl: int | None = None
    error: LabelSelectorParseError | None = None

    @property
    def mutated(self) -> bool:
        return self.outcome.mutated


def decide_ttl(workload: Workload, policy: DefaultingPolicy) -> DefaultingDecision:
    """Run the decision table for one workload."""
    previous = workload.ttl_seconds_after_finished
    selector_matched = False

    if policy.selector_enabled:
        try:
            selected = matches(policy.label_selector, workload.labels)
        except LabelSelectorParseError as exc:
            return DefaultingDecision(
                workload=workload,
                outcome=DefaultingOutcome.DENIED,
                previous_ttl=previous,
                error=exc,
            )
        if not selected:
            return DefaultingDecision(
                workload=workload,
                outcome=DefaultingOutcome.SKIPPED,
                previous_ttl=previous,
            )
        selector_matched = True

    if previous == policy.target_ttl:
        return DefaultingDecision(
            workload=workload,
            outcome=DefaultingOutcome.ALREADY_SET,
            selector_matched=selector_matched,
            previous_ttl=previous,
        )

    return DefaultingDecision(
        workload=workload.with_ttl(policy.target_ttl),
        outcome=DefaultingOutcome.PATCHED,
        selector_matched=selector_matched,
        previous_ttl=previous,
    )
