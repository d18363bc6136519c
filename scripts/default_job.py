#!/usr/bin/env python3
"""
Run the TTL defaulter against a Job manifest offline.

Usage:
    python scripts/default_job.py job.yaml [--target-ttl 3600]
        [--label-selector 'team=data'] [--config settings.yaml]

Reads a batch/v1 Job (YAML or JSON; "-" for stdin), prints the outcome on
stderr and the resulting manifest as YAML on stdout.  Exit status:
0 allowed, 1 denied or invalid input.
"""

import argparse
import sys
from pathlib import Path

import yaml

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from jobttl_config import SettingsValidationError, build_defaulter, get_active_settings
from jobttl_kernel.exceptions import AdmissionError, InvalidLabelSelectorError
from jobttl_kernel.services.admission_review import apply_to_object, workload_from_object


def read_manifest(source: str) -> dict:
    if source == "-":
        return yaml.safe_load(sys.stdin) or {}
    with open(source) as f:
        return yaml.safe_load(f) or {}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Default a Job's TTL offline")
    parser.add_argument("manifest", help="Job manifest path, or - for stdin")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--target-ttl", type=int, default=None)
    parser.add_argument("--label-selector", default=None)
    parser.add_argument("--operation", default="CREATE",
                        choices=["CREATE", "UPDATE"])
    args = parser.parse_args(argv)

    overrides = {}
    if args.target_ttl is not None:
        overrides["target_ttl"] = args.target_ttl
    if args.label_selector is not None:
        overrides["label_selector"] = args.label_selector

    try:
        settings = get_active_settings(args.config, overrides)
    except SettingsValidationError as exc:
        for err in exc.errors:
            print(f"ERROR: {err}", file=sys.stderr)
        return 1
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        manifest = read_manifest(args.manifest)
    except (OSError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    defaulter = build_defaulter(settings)
    try:
        workload = workload_from_object(manifest)
        decision = defaulter.default(workload, operation=args.operation)
    except (AdmissionError, InvalidLabelSelectorError) as exc:
        print(f"{exc.code}: {exc}", file=sys.stderr)
        return 1

    print(f"outcome: {decision.outcome.value}", file=sys.stderr)
    yaml.safe_dump(apply_to_object(manifest, decision.workload), sys.stdout, sort_keys=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
