import sys
import os
from datetime import datetime
from typing import Any


# ═══════════════════════════════════════════════════════════════════════════════
# LOG FILTERING
# ═══════════════════════════════════════════════════════════════════════════════
# Only these scopes are shown by default.
# Everything else is gated behind STOREFRONT_DEBUG

INFO_SCOPES = {
    "API",          # Request-level events
    "ORDERS",       # Order placement / cancellation
    "LOADER",       # Dataset import / export
    "CACHE",        # Namespace invalidation
    "DB",           # Django setup, connection status
    "MONITORING",   # Metrics registration
}

# DEBUG-only scopes (hidden by default)
DEBUG_SCOPES = {
    "SQL",
    "SIGNALS",
    "COOKBOOK",
}


def debug_enabled() -> bool:
    return os.getenv("STOREFRONT_DEBUG", "false").lower() == "true"


def log(scope: str, message: str, data: Any = None) -> None:
    """
    Unified logging function for Storefront.

    Only INFO_SCOPES are shown by default.
    Set STOREFRONT_DEBUG=true to see all scopes.
    """
    if not debug_enabled() and scope not in INFO_SCOPES:
        return

    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] [{scope}] {message}")

    if data:
        print(f"  Data: {data}")

    sys.stdout.flush()


def log_section(scope: str, title: str) -> None:
    """
    Log a section header with visual separator.
    """
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"\n{'='*60}")
    print(f"[{timestamp}] [{scope}] {title}")
    print(f"{'='*60}")
    sys.stdout.flush()


def log_counts(scope: str, title: str, counts: dict) -> None:
    """
    Log a per-model count table (used by the dataset loader).
    """
    if not debug_enabled() and scope not in INFO_SCOPES:
        return
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] [{scope}] {title}")
    width = max((len(k) for k in counts), default=0)
    for key, value in counts.items():
        print(f"  {key.ljust(width)}  {value}")
    sys.stdout.flush()
