#!/usr/bin/env python3
"""
Validate Job TTL webhook settings the way the webhook does at startup.

Usage:
    python scripts/check_webhook_config.py [--config settings.yaml]
        [--target-ttl 3600] [--label-selector 'app=batch'] ...

Flags mirror the webhook process flags and override values from --config.
Prints the resolved settings as JSON on success; exits 1 and prints the
validation errors otherwise.
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

import yaml

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from jobttl_config import SettingsValidationError, get_active_settings
from jobttl_config.loader import compute_fingerprint
from jobttl_kernel.logging_config import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate Job TTL admission webhook settings",
    )
    parser.add_argument("--config", type=Path, default=None,
                        help="YAML settings file")
    parser.add_argument("--target-ttl", type=int, default=None,
                        help="The target TTL in seconds for jobs after they finish")
    parser.add_argument("--label-selector", default=None,
                        help="Label selector to match jobs for TTL patching")
    parser.add_argument("--metrics-bind-address", default=None,
                        help="The address the metric endpoint binds to.")
    parser.add_argument("--health-probe-bind-address", default=None,
                        help="The address the probe endpoint binds to.")
    parser.add_argument("--leader-elect", action="store_true", default=None,
                        help="Enable leader election for controller manager.")
    parser.add_argument("--cert-dir", default=None,
                        help="The directory that contains the server key and certificate.")
    parser.add_argument("--webhook-port", type=int, default=None,
                        help="Port the webhook server listens on.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Emit structured logs to stderr")
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Only flags the user actually passed become overrides."""
    names = (
        "target_ttl", "label_selector", "metrics_bind_address",
        "health_probe_bind_address", "leader_elect", "cert_dir", "webhook_port",
    )
    return {
        name: getattr(args, name)
        for name in names
        if getattr(args, name) is not None
    }


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        configure_logging(level=logging.DEBUG)

    try:
        settings = get_active_settings(args.config, overrides_from_args(args))
    except SettingsValidationError as exc:
        print("VALIDATION FAILED:", file=sys.stderr)
        for err in exc.errors:
            print(f"  ERROR: {err}", file=sys.stderr)
        return 1
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    resolved = dataclasses.asdict(settings)
    resolved["fingerprint"] = compute_fingerprint(settings)
    print(json.dumps(resolved, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
