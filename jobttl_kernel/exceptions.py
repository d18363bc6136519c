"""
Typed Exception Hierarchy for the Job TTL Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from JobTTLError:

    JobTTLError (base)
    |
    +-- ConfigurationError
    |   +-- LabelSelectorParseError
    |   +-- InvalidLabelSelectorError
    |   +-- InvalidTargetTTLError
    |
    +-- AdmissionError
        +-- WorkloadKindMismatchError
        +-- MalformedWorkloadError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | LABEL_SELECTOR_PARSE_ERROR  | Selector text violates the grammar
                | INVALID_LABEL_SELECTOR      | Defaulting denied by a bad selector
                | INVALID_TARGET_TTL          | Target TTL is not a positive integer
----------------|-----------------------------|-----------------------------------------
Admission       | WORKLOAD_KIND_MISMATCH      | Admitted object is not a batch/v1 Job
                | MALFORMED_WORKLOAD          | Job body has fields of the wrong shape

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CONFIGURATION ERRORS BLOCK THE REQUEST AND ARE NEVER RETRIED:

    try:
        decision = defaulter.default(workload)
    except InvalidLabelSelectorError as e:
        return deny(code=e.code, message=str(e))

   A malformed selector does not become valid on retry.  Catch it once at
   startup via ``jobttl_config.get_active_settings()``.

2. ADMISSION ERRORS ARE INTEGRATION BUGS:

    except WorkloadKindMismatchError as e:
        log.error("unexpected kind", extra={"kind": e.actual_kind})

There is no transient error category.  The kernel performs no I/O that can
fail intermittently.
"""


class JobTTLError(Exception):
    """
    Base exception for all job TTL kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "JOB_TTL_ERROR"


# Configuration exceptions


class ConfigurationError(JobTTLError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class LabelSelectorParseError(ConfigurationError):
    """Label selector text could not be parsed."""

    code: str = "LABEL_SELECTOR_PARSE_ERROR"

    def __init__(self, selector: str, position: int, reason: str):
        self.selector = selector
        self.position = position
        self.reason = reason
        super().__init__(
            f"unable to parse label selector {selector!r} at position {position}: {reason}"
        )


class InvalidLabelSelectorError(ConfigurationError):
    """
    Defaulting was denied because the configured selector is malformed.

    Raised per request.  Wraps the underlying LabelSelectorParseError.
    """

    code: str = "INVALID_LABEL_SELECTOR"

    def __init__(self, selector: str, reason: str):
        self.selector = selector
        self.reason = reason
        super().__init__(f"invalid label selector: {reason}")


class InvalidTargetTTLError(ConfigurationError):
    """Target TTL is not a positive integer number of seconds."""

    code: str = "INVALID_TARGET_TTL"

    def __init__(self, target_ttl: object):
        self.target_ttl = target_ttl
        super().__init__(
            f"target TTL must be a positive integer number of seconds, got {target_ttl!r}"
        )


# Admission exceptions


class AdmissionError(JobTTLError):
    """Base exception for errors translating admitted objects."""

    code: str = "ADMISSION_ERROR"


class WorkloadKindMismatchError(AdmissionError):
    """The admitted object is not a batch/v1 Job."""

    code: str = "WORKLOAD_KIND_MISMATCH"

    def __init__(self, actual_api_version: str | None, actual_kind: str | None):
        self.actual_api_version = actual_api_version
        self.actual_kind = actual_kind
        super().__init__(
            f"expected a batch/v1 Job but got a {actual_api_version or '<none>'} "
            f"{actual_kind or '<none>'}"
        )


class MalformedWorkloadError(AdmissionError):
    """A Job body field has an unexpected shape."""

    code: str = "MALFORMED_WORKLOAD"

    def __init__(self, field_path: str, reason: str):
        self.field_path = field_path
        self.reason = reason
        super().__init__(f"malformed Job field {field_path}: {reason}")
