"""
Settings Validator (``jobttl_config.validator``).

Responsibility
--------------
Eager startup validation of ``WebhookSettings``.  Catches a malformed label
selector once, before the webhook serves traffic, instead of denying every
admission request at runtime.

Invariants enforced
-------------------
* ``target_ttl`` is a positive integer that fits the Job API's int32 field.
* ``label_selector`` parses with the kernel's selector parser (the same
  code path the decision uses, so startup and runtime can never disagree).
* ``webhook_port`` is a valid TCP port.

Failure modes
-------------
* Validation errors (``SettingsValidationResult.errors``)  -> the webhook
  MUST NOT start.
* Validation warnings (``SettingsValidationResult.warnings``)  -> the
  webhook may start but the settings deserve review.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from jobttl_config.schema import WebhookSettings
from jobttl_kernel.domain.label_selector import MATCH_EVERYTHING, parse_selector
from jobttl_kernel.exceptions import LabelSelectorParseError

_INT32_MAX = 2**31 - 1


@dataclass
class SettingsValidationResult:
    """
    Result of settings validation.

    ``is_valid`` is True only when ``errors`` is empty.  Warnings never
    block startup.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)


def validate_settings(settings: WebhookSettings) -> SettingsValidationResult:
    """Run every startup check and collect the findings."""
    result = SettingsValidationResult()
    _validate_target_ttl(settings, result)
    _validate_label_selector(settings, result)
    _validate_ports(settings, result)
    return result


def _validate_target_ttl(settings: WebhookSettings, result: SettingsValidationResult) -> None:
    ttl = settings.target_ttl
    if isinstance(ttl, bool) or not isinstance(ttl, int):
        result.add_error(f"target-ttl must be an integer, got {ttl!r}")
        return
    if ttl <= 0:
        result.add_error(f"target-ttl must be positive, got {ttl}")
    elif ttl > _INT32_MAX:
        result.add_error(f"target-ttl must fit in int32, got {ttl}")


def _validate_label_selector(settings: WebhookSettings, result: SettingsValidationResult) -> None:
    selector = settings.label_selector
    if selector == MATCH_EVERYTHING:
        result.add_warning("label-selector is empty; every Job will be defaulted")
        return
    try:
        parsed = parse_selector(selector)
    except LabelSelectorParseError as exc:
        result.add_error(f"label-selector: {exc}")
        return
    if parsed.empty:
        result.add_warning(
            f"label-selector {selector!r} has no requirements; every Job will be defaulted"
        )


def _validate_ports(settings: WebhookSettings, result: SettingsValidationResult) -> None:
    if not 0 < settings.webhook_port < 65536:
        result.add_error(f"webhook port must be within 1-65535, got {settings.webhook_port}")
    for flag, address in (
        ("metrics-bind-address", settings.metrics_bind_address),
        ("health-probe-bind-address", settings.health_probe_bind_address),
    ):
        # "0" disables the listener
        if address == "0":
            continue
        _, sep, port = address.rpartition(":")
        if not sep or not port.isdigit() or not 0 < int(port) < 65536:
            result.add_warning(f"{flag} {address!r} is not a host:port address")
