"""Ingestion layer.

Turns loosely-typed snapshots received from a bridge into typed values the
reconciler can compare.
"""

from mosusync.ingestion.normalize import NormalizedSnapshot, normalize_snapshot, normalize_view_state

__all__ = ["NormalizedSnapshot", "normalize_snapshot", "normalize_view_state"]
