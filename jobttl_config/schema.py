"""
WebhookSettings schema.

The process-level settings of the Job TTL admission webhook.  Field names
and defaults mirror the webhook's command-line flags.  Only ``target_ttl``
and ``label_selector`` reach the kernel (via ``to_policy()``); the rest are
carried for the transport that serves the webhook.
"""

from __future__ import annotations

from dataclasses import dataclass

from jobttl_kernel.domain.ttl_defaulter import (
    DEFAULT_TARGET_TTL_SECONDS,
    DefaultingPolicy,
)

DEFAULT_CERT_DIR = "/tmp/k8s-webhook-server/serving-certs"


@dataclass(frozen=True)
class WebhookSettings:
    """Immutable settings fixed for the process lifetime."""

    target_ttl: int = DEFAULT_TARGET_TTL_SECONDS
    label_selector: str = ""
    metrics_bind_address: str = ":8080"
    health_probe_bind_address: str = ":8081"
    leader_elect: bool = False
    cert_dir: str = DEFAULT_CERT_DIR
    webhook_port: int = 9443

    def to_policy(self) -> DefaultingPolicy:
        """The kernel-facing slice of these settings."""
        return DefaultingPolicy(
            target_ttl=self.target_ttl,
            label_selector=self.label_selector,
        )
