"""Per-session count of rows written since the last commit.

SQLAlchemy's ``commit()`` does not report affected rows, while the write
repository contract returns them.  The tracker listens to the session's
flush events and counts the new, modified and deleted instances of every
flush, whether triggered explicitly or by autoflush.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.orm import Session

_INFO_KEY = "crudforge.change_tracker"


class ChangeTracker:
    """Counts ORM rows written by flushes in the current transaction."""

    def __init__(self, session: Session) -> None:
        self.pending = 0
        event.listen(session, "after_flush", self._after_flush)
        event.listen(session, "after_commit", self._reset)
        event.listen(session, "after_rollback", self._reset)

    def _after_flush(self, session: Session, _flush_context: Any) -> None:
        # new/dirty/deleted still hold their pre-flush state here
        modified = sum(
            1 for obj in session.dirty if session.is_modified(obj, include_collections=False)
        )
        self.pending += len(session.new) + len(session.deleted) + modified

    def _reset(self, _session: Session) -> None:
        self.pending = 0


def tracker_for(session: Session) -> ChangeTracker:
    """Return the session's tracker, installing it on first use."""
    tracker = session.info.get(_INFO_KEY)
    if tracker is None:
        tracker = ChangeTracker(session)
        session.info[_INFO_KEY] = tracker
    return tracker
