"""
JobTTLDefaulter -- entry point the admission transport calls per Job.

Responsibility:
    Runs the pure decision table (domain.ttl_defaulter.decide_ttl), logs
    the decision with the Job's identity, hands the outcome to the
    OutcomeRecorder, and turns a DENIED decision into an exception.

Architecture position:
    Kernel > Services -- imperative shell around the pure decision.
    Holds only immutable configuration and an injected recorder, so one
    instance serves any number of concurrent admission requests.

Invariants enforced:
    - Exactly one outcome is recorded per call, after the decision exists.
    - A DENIED call raises InvalidLabelSelectorError and returns nothing;
      the caller's workload is untouched.
    - SKIPPED and ALREADY_SET calls return the input workload unchanged.

Failure modes:
    - InvalidLabelSelectorError: the configured selector is malformed.
      Callers must reject the admission request and must not retry.
"""

from __future__ import annotations

from jobttl_kernel.domain.outcome import DefaultingOutcome
from jobttl_kernel.domain.ttl_defaulter import (
    DefaultingDecision,
    DefaultingPolicy,
    decide_ttl,
)
from jobttl_kernel.domain.workload import Workload
from jobttl_kernel.exceptions import InvalidLabelSelectorError
from jobttl_kernel.logging_config import LogContext, get_logger
from jobttl_kernel.services.outcome_recorder import OutcomeRecorder

logger = get_logger("services.job_defaulter")


class JobTTLDefaulter:
    """
    Defaults ``ttlSecondsAfterFinished`` on admitted Jobs.

    Contract:
        ``default()`` returns a DefaultingDecision for PATCHED, ALREADY_SET
        and SKIPPED, and raises InvalidLabelSelectorError for DENIED.

    Guarantees:
        - Stateless apart from the recorder; safe for concurrent calls.
        - The recorder is never consulted before the decision is final.

    Non-goals:
        - Does NOT decode admission requests (services.admission_review).
        - Does NOT validate the selector up front (jobttl_config does that
          at startup); a malformed selector is still denied per request.
    """

    def __init__(self, policy: DefaultingPolicy, recorder: OutcomeRecorder):
        self._policy = policy
        self._recorder = recorder

    @property
    def policy(self) -> DefaultingPolicy:
        return self._policy

    @property
    def recorder(self) -> OutcomeRecorder:
        return self._recorder

    def default(self, workload: Workload, *, operation: str = "UPDATE") -> DefaultingDecision:
        """
        Decide and apply the TTL default for one Job.

        Raises:
            InvalidLabelSelectorError: if the configured selector is malformed.
        """
        with LogContext.bind(
            job=workload.name, namespace=workload.namespace, operation=operation,
        ):
            decision = decide_ttl(workload, self._policy)
            self._log_decision(decision)
            self._recorder.record(
                decision.outcome,
                selector_matched=decision.selector_matched,
                operation=operation,
            )

        if decision.outcome is DefaultingOutcome.DENIED:
            raise InvalidLabelSelectorError(
                self._policy.label_selector, decision.error.reason,
            ) from decision.error
        return decision

    def _log_decision(self, decision: DefaultingDecision) -> None:
        policy = self._policy
        outcome = decision.outcome

        if outcome is DefaultingOutcome.DENIED:
            # Startup validation should have caught this.
            logger.error(
                "invalid_label_selector",
                extra={
                    "selector": policy.label_selector,
                    "reason": decision.error.reason,
                },
            )
            return

        if outcome is DefaultingOutcome.SKIPPED:
            logger.info(
                "job_selector_skipped",
                extra={
                    "selector": policy.label_selector,
                    "job_labels": dict(decision.workload.labels),
                },
            )
            return

        if decision.selector_matched:
            logger.info(
                "job_selector_matched",
                extra={"selector": policy.label_selector},
            )

        if outcome is DefaultingOutcome.ALREADY_SET:
            logger.info(
                "job_ttl_already_set",
                extra={
                    "ttl_seconds_after_finished": decision.previous_ttl,
                    "target_ttl": policy.target_ttl,
                },
            )
            return

        if decision.previous_ttl is not None:
            logger.info(
                "job_ttl_overwritten",
                extra={
                    "current_ttl": decision.previous_ttl,
                    "target_ttl": policy.target_ttl,
                },
            )
        logger.info(
            "job_ttl_patched",
            extra={"ttl_seconds_after_finished": policy.target_ttl},
        )
