"""
Pytest fixtures for the job TTL kernel test suite.

Provides:
- Structured log capture
- A fresh prometheus_client registry and OutcomeRecorder per test
- JobTTLDefaulter factories (builders live in tests/builders.py)
"""

import json
import logging
from io import StringIO

import pytest
from prometheus_client import CollectorRegistry

from jobttl_kernel.domain.ttl_defaulter import DefaultingPolicy
from jobttl_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from jobttl_kernel.services.job_defaulter import JobTTLDefaulter
from jobttl_kernel.services.outcome_recorder import OutcomeRecorder

from tests.builders import TARGET_TTL


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture jobttl_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, defaulter):
            defaulter.default(make_workload())
            logs = captured_logs()
            assert any(r["message"] == "job_ttl_patched" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("jobttl_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Metrics fixtures
# =============================================================================


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def recorder(registry) -> OutcomeRecorder:
    return OutcomeRecorder(registry)


@pytest.fixture
def make_defaulter(recorder):
    """Build a JobTTLDefaulter sharing the test's recorder."""

    def _make(label_selector: str = "", target_ttl: int = TARGET_TTL) -> JobTTLDefaulter:
        policy = DefaultingPolicy(target_ttl=target_ttl, label_selector=label_selector)
        return JobTTLDefaulter(policy, recorder)

    return _make


@pytest.fixture
def defaulter(make_defaulter) -> JobTTLDefaulter:
    return make_defaulter()
