"""
jobttl_config -- single public entrypoint for webhook settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``, and wires a ready-to-serve
    ``JobTTLDefaulter`` from them with ``build_defaulter()``.

Architecture position:
    Configuration layer.  Sits above ``jobttl_kernel``; the kernel MUST
    NEVER import from ``jobttl_config``.

Invariants enforced:
    - Startup validation is authoritative: settings with errors never
      reach the kernel.  The kernel still denies a malformed selector per
      request if one is ever supplied some other way.
    - Overrides (command-line flags) take precedence over file values,
      which take precedence over defaults.

Failure modes:
    - ``FileNotFoundError`` / ``yaml.YAMLError`` -- unreadable settings file.
    - ``ValueError`` -- unknown key or wrongly typed value.
    - ``SettingsValidationError`` -- validation errors (a ConfigurationError).

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``JOBTTL_CONFIG_TRACE`` log entry with the resolved values and their
    fingerprint.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any

from prometheus_client import CollectorRegistry

from jobttl_config.loader import compute_fingerprint, load_settings, parse_settings
from jobttl_config.schema import WebhookSettings
from jobttl_config.validator import SettingsValidationResult, validate_settings
from jobttl_kernel.exceptions import ConfigurationError
from jobttl_kernel.logging_config import get_logger
from jobttl_kernel.services.job_defaulter import JobTTLDefaulter
from jobttl_kernel.services.outcome_recorder import OutcomeRecorder

_logger = get_logger("config")


class SettingsValidationError(ConfigurationError):
    """Settings failed startup validation."""

    code: str = "SETTINGS_VALIDATION_FAILED"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            "webhook settings failed validation: " + "; ".join(self.errors)
        )


def get_active_settings(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> WebhookSettings:
    """The ONLY public settings entrypoint.

    Layers defaults, the optional YAML file at ``path``, then
    ``overrides``; validates the result and returns it.

    Raises:
        SettingsValidationError: if validation reports any error.
    """
    settings = WebhookSettings()
    if path is not None:
        settings = load_settings(path, settings)
    if overrides:
        settings = parse_settings(overrides, settings)

    result = validate_settings(settings)
    for warning in result.warnings:
        _logger.warning("config_warning", extra={"detail": warning})
    if not result.is_valid:
        raise SettingsValidationError(result.errors)

    _logger.info(
        "JOBTTL_CONFIG_TRACE",
        extra={
            "trace_type": "JOBTTL_CONFIG_TRACE",
            "settings_path": str(path) if path is not None else None,
            "fingerprint": compute_fingerprint(settings),
            **dataclasses.asdict(settings),
        },
    )
    return settings


def build_defaulter(
    settings: WebhookSettings,
    registry: CollectorRegistry | None = None,
) -> JobTTLDefaulter:
    """Wire a JobTTLDefaulter with its own OutcomeRecorder."""
    return JobTTLDefaulter(settings.to_policy(), OutcomeRecorder(registry))


__all__ = [
    "SettingsValidationError",
    "SettingsValidationResult",
    "WebhookSettings",
    "build_defaulter",
    "get_active_settings",
    "validate_settings",
]
