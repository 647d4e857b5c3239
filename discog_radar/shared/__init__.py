"""Shared utilities for the Discogs Azure Function proxy.

Exposes:
    proxy_request - GET forwarding with credentials, retries and the JSON error envelope.
    scan_labels - label discovery over a filtered release batch.
"""

from .common_proxy import proxy_request  # re-export for convenience
from .label_scan import scan_labels

__all__ = ["proxy_request", "scan_labels"]
