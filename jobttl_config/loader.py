"""
Settings Loader (``jobttl_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses a plain dict into a
``WebhookSettings``.  Keys may be written as the webhook's flag names
(``target-ttl``) or as field names (``target_ttl``).

Invariants enforced
-------------------
* Unknown keys are rejected; a typo never silently falls back to a default.
* Values are type-coerced only where the YAML scalar is unambiguous
  (an int given as a numeric string is accepted for ports and TTLs).
* ``compute_fingerprint`` is a deterministic SHA-256 of the resolved
  settings, used in the config trace log.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or wrong value type  -> ``ValueError``.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from jobttl_config.schema import WebhookSettings

_FIELDS: dict[str, dataclasses.Field] = {
    f.name: f for f in dataclasses.fields(WebhookSettings)
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")
    return data


def normalize_key(key: str) -> str:
    """``target-ttl`` -> ``target_ttl``."""
    return key.strip().replace("-", "_")


def _coerce(name: str, value: Any) -> Any:
    expected = _FIELDS[name].type
    if expected == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ValueError(f"{name}: expected a boolean, got {value!r}")
    if expected == "int":
        if isinstance(value, bool):
            raise ValueError(f"{name}: expected an integer, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value)
        raise ValueError(f"{name}: expected an integer, got {value!r}")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{name}: expected a string, got {value!r}")
    return value


def parse_settings(
    data: dict[str, Any],
    base: WebhookSettings | None = None,
) -> WebhookSettings:
    """
    Parse a dict into WebhookSettings, layered over ``base``.

    Raises:
        ValueError: on unknown keys or values of the wrong type.
    """
    values: dict[str, Any] = {}
    for raw_key, raw_value in data.items():
        name = normalize_key(str(raw_key))
        if name not in _FIELDS:
            raise ValueError(
                f"unknown setting {raw_key!r}; expected one of "
                f"{', '.join(sorted(k.replace('_', '-') for k in _FIELDS))}"
            )
        values[name] = _coerce(name, raw_value)
    return dataclasses.replace(base or WebhookSettings(), **values)


def load_settings(path: Path, base: WebhookSettings | None = None) -> WebhookSettings:
    """Load and parse a YAML settings file."""
    return parse_settings(load_yaml_file(path), base)


def compute_fingerprint(settings: WebhookSettings) -> str:
    """Deterministic SHA-256 of the resolved settings."""
    canonical = json.dumps(dataclasses.asdict(settings), sort_keys=True)
    return hashlib.sha256(canonical.encode()).hexdigest()
