"""
Snapshot Store - Holds the single currently published Snapshot.

publish() swaps the slot under a lock; current() returns whatever
Snapshot is visible at that instant. Snapshots are immutable, so a
reader holding a reference can never observe a later cycle's data
mixed into it. Readers never wait on a fetch.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Optional

from .models import Snapshot


logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    Single-slot, thread-safe snapshot holder.

    current() returns None until the first successful publish
    ("not yet available").
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: Optional[Snapshot] = None
        self._published_at: Optional[datetime] = None
        self._publish_count = 0

    def publish(self, snapshot: Snapshot) -> None:
        """Make snapshot the visible value, replacing the previous one."""
        if not isinstance(snapshot, Snapshot):
            raise TypeError(f"Expected Snapshot, got {type(snapshot).__name__}")

        with self._lock:
            self._snapshot = snapshot
            self._published_at = datetime.utcnow()
            self._publish_count += 1
            count = self._publish_count

        logger.info(
            f"Published snapshot {snapshot.cycle_id or '-'} "
            f"(#{count}, {len(snapshot.latest)} headlines, {len(snapshot.related)} themes)"
        )

    def current(self) -> Optional[Snapshot]:
        """Return the visible snapshot, or None if none has been published."""
        with self._lock:
            return self._snapshot

    @property
    def is_available(self) -> bool:
        return self.current() is not None

    @property
    def published_at(self) -> Optional[datetime]:
        with self._lock:
            return self._published_at

    @property
    def publish_count(self) -> int:
        with self._lock:
            return self._publish_count

    def get_status(self) -> dict[str, Any]:
        """Get store status for diagnostics."""
        with self._lock:
            snapshot = self._snapshot
            return {
                "available": snapshot is not None,
                "cycle_id": snapshot.cycle_id if snapshot else None,
                "published_at": self._published_at.isoformat() if self._published_at else None,
                "publish_count": self._publish_count,
            }
