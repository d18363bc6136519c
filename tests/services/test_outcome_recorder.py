"""Tests for OutcomeRecorder counters."""

import pytest
from prometheus_client import CollectorRegistry

from jobttl_kernel.domain.outcome import DefaultingOutcome
from jobttl_kernel.services.outcome_recorder import (
    JOBS_MATCHING_SELECTOR_TOTAL,
    JOBS_PATCHED_TOTAL,
    JOBS_TTL_ALREADY_SET_TOTAL,
    JOBS_TTL_SET_TOTAL,
    REQUESTS_TOTAL,
    OutcomeCounts,
    OutcomeRecorder,
)


class TestOutcomeRecorder:

    def test_starts_at_zero(self, recorder):
        assert recorder.snapshot() == OutcomeCounts(0, 0, 0, 0, 0, 0)

    def test_patched_increments_patch_counters(self, recorder, registry):
        recorder.record(DefaultingOutcome.PATCHED, operation="CREATE")
        assert registry.get_sample_value(
            REQUESTS_TOTAL, {"operation": "CREATE", "result": "patched"}
        ) == 1.0
        assert registry.get_sample_value(JOBS_PATCHED_TOTAL) == 1.0
        assert registry.get_sample_value(JOBS_TTL_SET_TOTAL) == 1.0
        assert registry.get_sample_value(JOBS_TTL_ALREADY_SET_TOTAL) == 0.0

    def test_already_set_increments_its_counter(self, recorder, registry):
        recorder.record(DefaultingOutcome.ALREADY_SET)
        assert registry.get_sample_value(JOBS_TTL_ALREADY_SET_TOTAL) == 1.0
        assert registry.get_sample_value(JOBS_TTL_SET_TOTAL) == 0.0

    @pytest.mark.parametrize("outcome", [DefaultingOutcome.SKIPPED, DefaultingOutcome.DENIED])
    def test_non_mutating_outcomes_only_count_requests(self, recorder, registry, outcome):
        recorder.record(outcome)
        assert recorder.count(outcome) == 1
        assert registry.get_sample_value(JOBS_PATCHED_TOTAL) == 0.0
        assert registry.get_sample_value(JOBS_TTL_ALREADY_SET_TOTAL) == 0.0

    def test_selector_match_counted_separately(self, recorder, registry):
        recorder.record(DefaultingOutcome.PATCHED, selector_matched=True)
        recorder.record(DefaultingOutcome.ALREADY_SET, selector_matched=True)
        recorder.record(DefaultingOutcome.PATCHED)
        assert registry.get_sample_value(JOBS_MATCHING_SELECTOR_TOTAL) == 2.0

    def test_snapshot_sums_outcomes(self, recorder):
        recorder.record(DefaultingOutcome.PATCHED, selector_matched=True, operation="CREATE")
        recorder.record(DefaultingOutcome.PATCHED, operation="UPDATE")
        recorder.record(DefaultingOutcome.SKIPPED)
        recorder.record(DefaultingOutcome.DENIED)
        recorder.record(DefaultingOutcome.ALREADY_SET)

        counts = recorder.snapshot()
        assert counts == OutcomeCounts(
            evaluated=5,
            matched_selector=1,
            patched=2,
            already_set=1,
            skipped=1,
            denied=1,
        )

    def test_count_filters_by_operation(self, recorder):
        recorder.record(DefaultingOutcome.PATCHED, operation="CREATE")
        recorder.record(DefaultingOutcome.PATCHED, operation="UPDATE")
        assert recorder.count(DefaultingOutcome.PATCHED, operation="CREATE") == 1
        assert recorder.count(DefaultingOutcome.PATCHED) == 2

    def test_recorders_on_separate_registries_are_independent(self):
        a = OutcomeRecorder(CollectorRegistry())
        b = OutcomeRecorder(CollectorRegistry())
        a.record(DefaultingOutcome.PATCHED)
        assert a.snapshot().patched == 1
        assert b.snapshot().patched == 0

    def test_default_registry_is_private(self):
        a = OutcomeRecorder()
        b = OutcomeRecorder()
        assert a.registry is not b.registry

    def test_duplicate_registration_rejected(self, registry, recorder):
        with pytest.raises(ValueError):
            OutcomeRecorder(registry)
