"""
OutcomeRecorder -- concurrency-safe counters for defaulting outcomes.

Responsibility:
    Counts every TTL defaulting decision by outcome, plus the number of
    decisions whose Job matched the configured label selector.  Feeds the
    external metrics-exposition layer through a prometheus_client
    CollectorRegistry.

Architecture position:
    Kernel > Services -- imperative shell.
    Injected into JobTTLDefaulter and called strictly after the decision
    table has produced an outcome.  Never read by the decision itself.

Invariants enforced:
    - Exactly one per-outcome increment per recorded decision.
    - Increments are exact under concurrent writers; prometheus_client
      counters guard each value with a lock.
    - The recorder owns no process-wide state: each instance registers its
      counters on the registry it was given (a fresh one by default).

Failure modes:
    - ValueError from prometheus_client if two recorders are registered on
      the same registry (duplicate timeseries).

Metric names follow the original jobttlcontroller webhook so existing
dashboards keep working:

    jobttlcontroller_webhook_requests_total{operation, result}
    jobttlcontroller_webhook_jobs_patched_total
    jobttlcontroller_jobs_matching_selector_total
    jobttlcontroller_jobs_ttl_set_total
    jobttlcontroller_jobs_ttl_already_set_total
"""

from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter

from jobttl_kernel.domain.outcome import DefaultingOutcome
from jobttl_kernel.logging_config import get_logger

logger = get_logger("services.outcome_recorder")

METRIC_NAMESPACE = "jobttlcontroller"

REQUESTS_TOTAL = f"{METRIC_NAMESPACE}_webhook_requests_total"
JOBS_PATCHED_TOTAL = f"{METRIC_NAMESPACE}_webhook_jobs_patched_total"
JOBS_MATCHING_SELECTOR_TOTAL = f"{METRIC_NAMESPACE}_jobs_matching_selector_total"
JOBS_TTL_SET_TOTAL = f"{METRIC_NAMESPACE}_jobs_ttl_set_total"
JOBS_TTL_ALREADY_SET_TOTAL = f"{METRIC_NAMESPACE}_jobs_ttl_already_set_total"


@dataclass(frozen=True)
class OutcomeCounts:
    """Point-in-time read of the recorder's counters."""

    evaluated: int
    matched_selector: int
    patched: int
    already_set: int
    skipped: int
    denied: int


class OutcomeRecorder:
    """
    Per-outcome counters backed by prometheus_client.

    Contract:
        ``record()`` is fire-and-forget.  It returns nothing and raises
        nothing for valid outcomes.

    Guarantees:
        - Safe to call from any number of threads at once.
        - Counter values only ever increase.

    Non-goals:
        - Does NOT serve the /metrics endpoint (the transport does that
          with ``prometheus_client.make_wsgi_app(registry)`` or similar).
        - Does NOT influence or observe decisions.

    Usage:
        registry = CollectorRegistry()
        recorder = OutcomeRecorder(registry)
        recorder.record(DefaultingOutcome.PATCHED, selector_matched=True)
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self._requests = Counter(
            REQUESTS_TOTAL,
            "Total number of webhook admission requests",
            ["operation", "result"],
            registry=self.registry,
        )
        self._jobs_patched = Counter(
            JOBS_PATCHED_TOTAL,
            "Total number of Jobs that were patched with TTL values",
            registry=self.registry,
        )
        self._matching_selector = Counter(
            JOBS_MATCHING_SELECTOR_TOTAL,
            "Total number of Jobs matching the configured label selector",
            registry=self.registry,
        )
        self._ttl_set = Counter(
            JOBS_TTL_SET_TOTAL,
            "Total number of Jobs that had their TTL set",
            registry=self.registry,
        )
        self._ttl_already_set = Counter(
            JOBS_TTL_ALREADY_SET_TOTAL,
            "Total number of Jobs that already had the target TTL value",
            registry=self.registry,
        )

    def record(
        self,
        outcome: DefaultingOutcome,
        *,
        selector_matched: bool = False,
        operation: str = "UPDATE",
    ) -> None:
        """Count one decision."""
        self._requests.labels(operation=operation, result=outcome.value).inc()
        if selector_matched:
            self._matching_selector.inc()

        if outcome is DefaultingOutcome.PATCHED:
            self._jobs_patched.inc()
            self._ttl_set.inc()
        elif outcome is DefaultingOutcome.ALREADY_SET:
            self._ttl_already_set.inc()

        logger.debug(
            "outcome_counted",
            extra={
                "result": outcome.value,
                "selector_matched": selector_matched,
                "operation": operation,
            },
        )

    def count(self, outcome: DefaultingOutcome, operation: str | None = None) -> int:
        """Decisions recorded with ``outcome``, optionally for one operation."""
        total = 0.0
        for metric in self._requests.collect():
            for sample in metric.samples:
                if not sample.name.endswith("_total"):
                    continue
                if sample.labels.get("result") != outcome.value:
                    continue
                if operation is not None and sample.labels.get("operation") != operation:
                    continue
                total += sample.value
        return int(total)

    def snapshot(self) -> OutcomeCounts:
        """Read every counter at once (not atomic across counters)."""
        per_outcome = {o: self.count(o) for o in DefaultingOutcome}
        return OutcomeCounts(
            evaluated=sum(per_outcome.values()),
            matched_selector=self._read(JOBS_MATCHING_SELECTOR_TOTAL),
            patched=per_outcome[DefaultingOutcome.PATCHED],
            already_set=per_outcome[DefaultingOutcome.ALREADY_SET],
            skipped=per_outcome[DefaultingOutcome.SKIPPED],
            denied=per_outcome[DefaultingOutcome.DENIED],
        )

    def _read(self, sample_name: str) -> int:
        value = self.registry.get_sample_value(sample_name)
        return int(value or 0)
