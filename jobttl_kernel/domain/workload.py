"""
Workload -- Immutable view of an admitted batch Job.

Responsibility:
    Carries the only Job fields the defaulting decision reads or writes:
    identity (for diagnostics), labels, and ``ttlSecondsAfterFinished``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Built by the admission adapter from a decoded Job manifest; the
    kernel never holds a reference after a decision returns.

Invariants enforced:
    - Labels are an immutable str -> str mapping.
    - ``ttl_seconds_after_finished`` is either None (no policy) or an int.
    - Instances are never mutated; ``with_ttl()`` returns a new Workload.

Failure modes:
    - TypeError on construction with non-string label keys or values, or a
      non-integer TTL.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType


@dataclass(frozen=True, slots=True)
class Workload:
    """
    A batch Job as seen by the TTL defaulting decision.

    Contract:
        Field-for-field equality means "unmodified".  Any decision that does
        not patch the TTL returns the very same instance it received.

    Guarantees:
        - Immutable; labels are wrapped in a read-only mapping proxy.
        - ``with_ttl()`` never changes identity or labels.
    """

    name: str
    namespace: str
    labels: Mapping[str, str] = field(default_factory=dict)
    ttl_seconds_after_finished: int | None = None

    def __post_init__(self) -> None:
        for key, value in self.labels.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise TypeError(
                    f"label {key!r}={value!r} on Job {self.namespace}/{self.name} "
                    f"must map str to str"
                )
        ttl = self.ttl_seconds_after_finished
        # bool is an int subclass but never a valid TTL
        if ttl is not None and (isinstance(ttl, bool) or not isinstance(ttl, int)):
            raise TypeError(
                f"ttl_seconds_after_finished must be int or None, got {ttl!r}"
            )
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Workload):
            return NotImplemented
        return (
            self.name == other.name
            and self.namespace == other.namespace
            and dict(self.labels) == dict(other.labels)
            and self.ttl_seconds_after_finished == other.ttl_seconds_after_finished
        )

    def __hash__(self) -> int:
        return hash((
            self.name,
            self.namespace,
            frozenset(self.labels.items()),
            self.ttl_seconds_after_finished,
        ))

    @property
    def has_ttl(self) -> bool:
        return self.ttl_seconds_after_finished is not None

    def with_ttl(self, ttl_seconds: int) -> Workload:
        """Return a copy with ``ttl_seconds_after_finished`` set."""
        return replace(self, ttl_seconds_after_finished=ttl_seconds)
