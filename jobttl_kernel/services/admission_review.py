"""
Admission review adapter -- translate AdmissionReview documents.

Responsibility:
    Decodes an ``admission.k8s.io/v1`` AdmissionReview carrying a
    ``batch/v1`` Job into a Workload, runs JobTTLDefaulter, and encodes the
    decision back into an AdmissionReview response with a base64 JSONPatch.

Architecture position:
    Kernel > Services -- boundary adapter.  Works on already-deserialized
    dicts; the HTTPS server, TLS and request routing live outside the
    kernel.  Kind checks happen here so the decision only ever sees Jobs.

Invariants enforced:
    - The admitted object dict is never modified; patches are computed
      against a deep copy.
    - PATCHED -> allowed with a JSONPatch.  SKIPPED / ALREADY_SET ->
      allowed without a patch.  DENIED -> not allowed, HTTP 403.
    - Non-Job objects and malformed bodies -> not allowed, HTTP 400.
    - The response always echoes the request uid.

Failure modes:
    - WorkloadKindMismatchError / MalformedWorkloadError from the decode
      helpers when called directly.  ``handle_admission_review()`` converts
      them into rejected responses instead of raising.
"""

from __future__ import annotations

import base64
import copy
import json
from typing import Any

import jsonpatch

from jobttl_kernel.domain.outcome import DefaultingOutcome
from jobttl_kernel.domain.workload import Workload
from jobttl_kernel.exceptions import (
    AdmissionError,
    InvalidLabelSelectorError,
    MalformedWorkloadError,
    WorkloadKindMismatchError,
)
from jobttl_kernel.logging_config import LogContext, get_logger
from jobttl_kernel.services.job_defaulter import JobTTLDefaulter

logger = get_logger("services.admission_review")

ADMISSION_API_VERSION = "admission.k8s.io/v1"
ADMISSION_KIND = "AdmissionReview"
JOB_API_VERSION = "batch/v1"
JOB_KIND = "Job"
TTL_FIELD = "ttlSecondsAfterFinished"

# Operations that carry no object to default.
_PASSTHROUGH_OPERATIONS = frozenset({"DELETE", "CONNECT"})

_HTTP_BAD_REQUEST = 400
_HTTP_FORBIDDEN = 403


# ---------------------------------------------------------------------------
# Job manifest <-> Workload
# ---------------------------------------------------------------------------


def workload_from_object(obj: Any, *, namespace: str = "") -> Workload:
    """
    Decode a Job manifest dict into a Workload.

    ``namespace`` is used when the manifest omits ``metadata.namespace``
    (the admission request carries it separately on CREATE).

    Raises:
        WorkloadKindMismatchError: if the object is not a batch/v1 Job.
        MalformedWorkloadError: if metadata or spec fields have the wrong shape.
    """
    if not isinstance(obj, dict):
        raise MalformedWorkloadError("<root>", f"expected an object, got {type(obj).__name__}")

    api_version = obj.get("apiVersion")
    kind = obj.get("kind")
    if api_version != JOB_API_VERSION or kind != JOB_KIND:
        raise WorkloadKindMismatchError(api_version, kind)

    metadata = _section(obj, "metadata")
    spec = _section(obj, "spec")

    labels = metadata.get("labels") or {}
    if not isinstance(labels, dict):
        raise MalformedWorkloadError("metadata.labels", "expected a string map")
    for key, value in labels.items():
        if not isinstance(key, str):
            raise MalformedWorkloadError("metadata.labels", f"expected string keys, got {key!r}")
        if not isinstance(value, str):
            raise MalformedWorkloadError(f"metadata.labels.{key}", "expected a string value")

    ttl = spec.get(TTL_FIELD)
    if ttl is not None and (isinstance(ttl, bool) or not isinstance(ttl, int)):
        raise MalformedWorkloadError(f"spec.{TTL_FIELD}", f"expected an integer, got {ttl!r}")

    name = metadata.get("name") or metadata.get("generateName") or ""
    return Workload(
        name=str(name),
        namespace=str(metadata.get("namespace") or namespace),
        labels=labels,
        ttl_seconds_after_finished=ttl,
    )


def _section(obj: dict[str, Any], name: str) -> dict[str, Any]:
    value = obj.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedWorkloadError(name, "expected an object")
    return value


def apply_to_object(obj: dict[str, Any], workload: Workload) -> dict[str, Any]:
    """Return a deep copy of ``obj`` carrying the workload's TTL."""
    result = copy.deepcopy(obj)
    spec = result.get("spec")
    if spec is None:
        spec = result["spec"] = {}
    if workload.ttl_seconds_after_finished is None:
        spec.pop(TTL_FIELD, None)
    else:
        spec[TTL_FIELD] = workload.ttl_seconds_after_finished
    return result


def ttl_json_patch(obj: dict[str, Any], workload: Workload) -> list[dict[str, Any]]:
    """RFC 6902 operations turning ``obj``'s TTL into the workload's TTL."""
    return jsonpatch.make_patch(obj, apply_to_object(obj, workload)).patch


# ---------------------------------------------------------------------------
# AdmissionReview handling
# ---------------------------------------------------------------------------


def _review(response: dict[str, Any]) -> dict[str, Any]:
    return {
        "apiVersion": ADMISSION_API_VERSION,
        "kind": ADMISSION_KIND,
        "response": response,
    }


def _allowed(uid: str, patch: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    response: dict[str, Any] = {"uid": uid, "allowed": True}
    if patch:
        response["patchType"] = "JSONPatch"
        response["patch"] = base64.b64encode(
            json.dumps(patch, separators=(",", ":")).encode()
        ).decode()
    return _review(response)


def _rejected(uid: str, code: int, message: str, reason: str) -> dict[str, Any]:
    return _review({
        "uid": uid,
        "allowed": False,
        "status": {"code": code, "message": message, "reason": reason},
    })


def handle_admission_review(
    review: dict[str, Any],
    defaulter: JobTTLDefaulter,
) -> dict[str, Any]:
    """
    Answer one AdmissionReview request.

    Never raises for request content problems; every problem becomes a
    rejected response.  Programmer errors (a non-dict review) still raise.
    """
    request = review.get("request") or {}
    uid = str(request.get("uid", ""))
    operation = str(request.get("operation", "UPDATE"))

    with LogContext.bind(request_uid=uid or None, operation=operation):
        if operation in _PASSTHROUGH_OPERATIONS:
            logger.debug("admission_passthrough")
            return _allowed(uid)

        obj = request.get("object")
        try:
            workload = workload_from_object(obj, namespace=str(request.get("namespace") or ""))
        except AdmissionError as exc:
            logger.error("admission_decode_failed", exc_info=True)
            return _rejected(uid, _HTTP_BAD_REQUEST, str(exc), exc.code)

        try:
            decision = defaulter.default(workload, operation=operation)
        except InvalidLabelSelectorError as exc:
            return _rejected(uid, _HTTP_FORBIDDEN, str(exc), exc.code)

        if decision.outcome is DefaultingOutcome.PATCHED:
            return _allowed(uid, ttl_json_patch(obj, decision.workload))
        return _allowed(uid)
