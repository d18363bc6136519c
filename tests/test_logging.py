"""
Tests for the structured log stream emitted while defaulting Jobs.

Verifies:
- Decision events carry the Job identity bound by the service
- Admission failures flatten typed exceptions into exc_* fields
- The startup settings trace records the resolved values and fingerprint
- LogContext scopes nest, restore, and reject unknown fields
"""

import logging

import pytest

from jobttl_config import SettingsValidationError, get_active_settings
from jobttl_config.loader import compute_fingerprint
from jobttl_kernel.domain.label_selector import parse_selector
from jobttl_kernel.exceptions import InvalidLabelSelectorError, LabelSelectorParseError
from jobttl_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)
from jobttl_kernel.services.admission_review import handle_admission_review
from tests.builders import make_job, make_review, make_workload


def _events(records: list[dict], message: str) -> list[dict]:
    return [r for r in records if r["message"] == message]


# ---------------------------------------------------------------------------
# Decision events
# ---------------------------------------------------------------------------


class TestDecisionEvents:

    def test_invalid_selector_logged_with_job_identity(self, captured_logs, make_defaulter):
        defaulter = make_defaulter(label_selector="app==")
        with pytest.raises(InvalidLabelSelectorError):
            defaulter.default(make_workload(labels={"app": "batch"}), operation="CREATE")

        (record,) = _events(captured_logs(), "invalid_label_selector")
        assert record["level"] == "ERROR"
        assert record["selector"] == "app=="
        assert record["reason"]
        assert record["job"] == "nightly-report"
        assert record["namespace"] == "batch"
        assert record["operation"] == "CREATE"

    def test_skipped_job_logs_its_labels(self, captured_logs, make_defaulter):
        make_defaulter(label_selector="app=web").default(
            make_workload(labels={"app": "batch", "team": "data"})
        )

        (record,) = _events(captured_logs(), "job_selector_skipped")
        assert record["selector"] == "app=web"
        assert record["job_labels"] == {"app": "batch", "team": "data"}

    def test_overwrite_logs_both_ttls(self, captured_logs, defaulter):
        defaulter.default(make_workload(ttl=60))

        logs = captured_logs()
        (overwritten,) = _events(logs, "job_ttl_overwritten")
        assert overwritten["current_ttl"] == 60
        assert overwritten["target_ttl"] == 3600
        (patched,) = _events(logs, "job_ttl_patched")
        assert patched["ttl_seconds_after_finished"] == 3600

    def test_outcome_counted_at_debug(self, captured_logs, defaulter):
        defaulter.default(make_workload(ttl=3600), operation="UPDATE")

        (record,) = _events(captured_logs(), "outcome_counted")
        assert record["level"] == "DEBUG"
        assert record["result"] == "already_set"
        assert record["selector_matched"] is False


# ---------------------------------------------------------------------------
# Admission failures
# ---------------------------------------------------------------------------


class TestAdmissionFailureEvents:

    def test_kind_mismatch_flattened(self, captured_logs, defaulter):
        pod = {"apiVersion": "v1", "kind": "Pod", "metadata": {"name": "p"}}
        handle_admission_review(make_review(pod, uid="req-9"), defaulter)

        (record,) = _events(captured_logs(), "admission_decode_failed")
        assert record["level"] == "ERROR"
        assert record["request_uid"] == "req-9"
        assert record["operation"] == "CREATE"
        assert record["exc_type"] == "WorkloadKindMismatchError"
        assert record["exc_code"] == "WORKLOAD_KIND_MISMATCH"
        assert record["exc_actual_api_version"] == "v1"
        assert record["exc_actual_kind"] == "Pod"
        assert "traceback" not in record

    def test_malformed_workload_carries_field_path(self, captured_logs, defaulter):
        job = make_job(labels={"replicas": 3})
        handle_admission_review(make_review(job), defaulter)

        (record,) = _events(captured_logs(), "admission_decode_failed")
        assert record["exc_code"] == "MALFORMED_WORKLOAD"
        assert record["exc_field_path"] == "metadata.labels.replicas"
        assert record["exc_reason"] == "expected a string value"

    def test_selector_parse_error_flattened(self, captured_logs):
        logger = get_logger("services.job_defaulter")
        try:
            parse_selector("app in (")
        except LabelSelectorParseError:
            logger.error("invalid_label_selector", exc_info=True)

        (record,) = _events(captured_logs(), "invalid_label_selector")
        assert record["exc_code"] == "LABEL_SELECTOR_PARSE_ERROR"
        assert record["exc_selector"] == "app in ("
        assert record["exc_position"] == 8
        assert record["exc_reason"]

    def test_unexpected_exception_keeps_traceback(self, captured_logs):
        logger = get_logger("services.admission_review")
        try:
            raise KeyError("spec")
        except KeyError:
            logger.error("admission_handler_crashed", exc_info=True)

        (record,) = _events(captured_logs(), "admission_handler_crashed")
        assert record["exc_type"] == "KeyError"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]


# ---------------------------------------------------------------------------
# Startup trace
# ---------------------------------------------------------------------------


class TestConfigTrace:

    def test_trace_records_resolved_settings(self, captured_logs):
        settings = get_active_settings(
            overrides={"target_ttl": 120, "label_selector": "team=data"}
        )

        (record,) = _events(captured_logs(), "JOBTTL_CONFIG_TRACE")
        assert record["trace_type"] == "JOBTTL_CONFIG_TRACE"
        assert record["settings_path"] is None
        assert record["target_ttl"] == 120
        assert record["label_selector"] == "team=data"
        assert record["webhook_port"] == 9443
        assert record["fingerprint"] == compute_fingerprint(settings)

    def test_no_trace_when_validation_fails(self, captured_logs):
        with pytest.raises(SettingsValidationError):
            get_active_settings(overrides={"label_selector": "app in ("})
        assert _events(captured_logs(), "JOBTTL_CONFIG_TRACE") == []


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_request_and_job_scopes_nest(self):
        with LogContext.bind(request_uid="r1", operation="CREATE"):
            with LogContext.bind(job="etl", namespace="data"):
                assert LogContext.get_all() == {
                    "request_uid": "r1",
                    "operation": "CREATE",
                    "job": "etl",
                    "namespace": "data",
                }
            assert LogContext.get_all() == {"request_uid": "r1", "operation": "CREATE"}
        assert LogContext.get_all() == {}

    def test_none_keeps_outer_value(self):
        with LogContext.bind(request_uid="outer"):
            with LogContext.bind(request_uid=None, job="etl"):
                assert LogContext.get_all()["request_uid"] == "outer"

    def test_restored_when_block_raises(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(job="etl"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.bind(tenant="acme")


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    @pytest.fixture(autouse=True)
    def _fresh_logging(self):
        reset_logging()
        yield
        reset_logging()
        configure_logging(level=logging.DEBUG)

    def test_idempotent(self):
        configure_logging(handler=logging.NullHandler())
        configure_logging(handler=logging.NullHandler())
        assert len(logging.getLogger("jobttl_kernel").handlers) == 1

    def test_does_not_propagate_to_root(self):
        configure_logging(handler=logging.NullHandler())
        assert logging.getLogger("jobttl_kernel").propagate is False

    def test_service_loggers_share_the_kernel_namespace(self):
        assert get_logger("services.job_defaulter").name == "jobttl_kernel.services.job_defaulter"
