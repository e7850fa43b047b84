from __future__ import annotations
"""Era-batched withdrawal queue."""

from .unlocks import UnlockQueue, batch_id_at

__all__ = ["UnlockQueue", "batch_id_at"]
