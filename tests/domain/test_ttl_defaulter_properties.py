"""
Hypothesis-based properties of the TTL decision table.

Properties verified:
1. Idempotence: deciding twice equals deciding once
2. Non-mutation: every non-PATCHED decision returns the input unchanged
3. PATCHED always lands exactly on the target
"""

import pytest

try:
    from hypothesis import given, settings, strategies as st

    HYPOTHESIS_AVAILABLE = True
except ImportError:
    HYPOTHESIS_AVAILABLE = False
    pytest.skip("hypothesis not installed", allow_module_level=True)

from jobttl_kernel.domain.outcome import DefaultingOutcome
from jobttl_kernel.domain.ttl_defaulter import DefaultingPolicy, decide_ttl
from jobttl_kernel.domain.workload import Workload

label_tokens = st.sampled_from(["app", "team", "env", "batch", "web", "data", "prod"])
workloads = st.builds(
    Workload,
    name=st.just("job"),
    namespace=st.just("default"),
    labels=st.dictionaries(label_tokens, label_tokens, max_size=3),
    ttl_seconds_after_finished=st.one_of(st.none(), st.integers(0, 10**6)),
)
policies = st.builds(
    DefaultingPolicy,
    target_ttl=st.integers(1, 10**6),
    label_selector=st.sampled_from(
        ["", "app=batch", "team!=web", "env in (prod,data)", "!app", "team", "app=="]
    ),
)


class TestDecisionProperties:

    @given(workload=workloads, p=policies)
    @settings(max_examples=300)
    def test_idempotent(self, workload, p):
        once = decide_ttl(workload, p)
        twice = decide_ttl(once.workload, p)
        assert twice.workload == once.workload
        if once.outcome in (DefaultingOutcome.PATCHED, DefaultingOutcome.ALREADY_SET):
            assert twice.outcome is DefaultingOutcome.ALREADY_SET
        else:
            assert twice.outcome is once.outcome

    @given(workload=workloads, p=policies)
    @settings(max_examples=300)
    def test_non_patched_paths_return_input(self, workload, p):
        decision = decide_ttl(workload, p)
        if decision.outcome is not DefaultingOutcome.PATCHED:
            assert decision.workload is workload

    @given(workload=workloads, p=policies)
    @settings(max_examples=300)
    def test_patched_reaches_target(self, workload, p):
        decision = decide_ttl(workload, p)
        if decision.outcome is DefaultingOutcome.PATCHED:
            assert decision.workload.ttl_seconds_after_finished == p.target_ttl
            assert workload.ttl_seconds_after_finished != p.target_ttl
            assert decision.workload.labels == workload.labels

    @given(workload=workloads, p=policies)
    @settings(max_examples=200)
    def test_error_only_when_denied(self, workload, p):
        decision = decide_ttl(workload, p)
        assert (decision.error is not None) == (decision.outcome is DefaultingOutcome.DENIED)
