"""Services for the job TTL kernel (imperative shell)."""

from jobttl_kernel.services.admission_review import (
    apply_to_object,
    handle_admission_review,
    ttl_json_patch,
    workload_from_object,
)
from jobttl_kernel.services.job_defaulter import JobTTLDefaulter
from jobttl_kernel.services.outcome_recorder import OutcomeCounts, OutcomeRecorder

__all__ = [
    "JobTTLDefaulter",
    "OutcomeCounts",
    "OutcomeRecorder",
    "apply_to_object",
    "handle_admission_review",
    "ttl_json_patch",
    "workload_from_object",
]
