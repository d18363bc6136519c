"""
Job TTL Kernel

Admission-time defaulting of ``ttlSecondsAfterFinished`` for batch Jobs:
- Label-selector scoping of eligible Jobs
- Idempotent TTL assignment
- Exactly one classified outcome per admission call
- Concurrency-safe outcome counters
"""

__version__ = "0.1.0"
