"""
Pure domain layer.

This module contains immutable value objects and the TTL decision logic
with NO dependencies on:
- Metrics registries
- Configuration files
- Network or disk I/O

All domain objects are immutable and deterministic.
"""

from jobttl_kernel.domain.label_selector import (
    MATCH_EVERYTHING,
    LabelSelector,
    Operator,
    Requirement,
    matches,
    parse_selector,
)
from jobttl_kernel.domain.outcome import DefaultingOutcome
from jobttl_kernel.domain.ttl_defaulter import (
    DEFAULT_TARGET_TTL_SECONDS,
    DefaultingDecision,
    DefaultingPolicy,
    decide_ttl,
)
from jobttl_kernel.domain.workload import Workload

__all__ = [
    "DEFAULT_TARGET_TTL_SECONDS",
    "DefaultingDecision",
    "DefaultingOutcome",
    "DefaultingPolicy",
    "LabelSelector",
    "MATCH_EVERYTHING",
    "Operator",
    "Requirement",
    "Workload",
    "decide_ttl",
    "matches",
    "parse_selector",
]
