# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bounded activity history and session tracking.

Every student gets a ``deque`` capped at ``max_per_subject`` records, so
memory stays bounded even before the retention sweep runs. Records are
kept in processing order, which is submission order per student because
appends happen under the student's lock stripe.

Session summaries are a side index keyed by (student, session id), so two
students reusing a session id never share a summary. They are pruned
with the same cutoff as the records.
"""

import logging
from collections import deque
from dataclasses import replace
from datetime import datetime

from tutorwatch.core.monitoring.locks import SubjectLocks
from tutorwatch.core.monitoring.models import ActivityRecord, SessionSummary

logger = logging.getLogger(__name__)


class ActivityLog:
    """Per-student append log backing the pattern detectors.

    Args:
        max_per_subject: Maximum records retained per student.
        locks: Lock stripes shared with the other per-student stores.
    """

    def __init__(
        self,
        max_per_subject: int = 1000,
        locks: SubjectLocks | None = None,
    ) -> None:
        if max_per_subject < 1:
            raise ValueError(f"max_per_subject must be >= 1, got {max_per_subject}")
        self.max_per_subject = max_per_subject
        self._locks = locks or SubjectLocks()
        self._histories: dict[str, deque[ActivityRecord]] = {}
        self._sessions: dict[tuple[str, str], SessionSummary] = {}

    def __len__(self) -> int:
        return sum(len(history) for history in list(self._histories.values()))

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def append(self, record: ActivityRecord) -> None:
        """Append a finalized record and update its session summary."""
        with self._locks.for_subject(record.subject_id):
            history = self._histories.get(record.subject_id)
            if history is None:
                history = deque(maxlen=self.max_per_subject)
                self._histories[record.subject_id] = history
            history.append(record)
            self._track_session(record)

    def _track_session(self, record: ActivityRecord) -> None:
        key = (record.subject_id, record.session_id)
        session = self._sessions.get(key)
        if session is None:
            session = SessionSummary(
                session_id=record.session_id,
                subject_id=record.subject_id,
                started_at=record.timestamp,
                last_activity_at=record.timestamp,
            )
            self._sessions[key] = session

        session.activity_count += 1
        session.last_activity_at = record.timestamp
        session.risk_score = round(session.risk_score + record.risk_score, 2)
        if record.flagged:
            session.flagged_activity_ids.append(record.id)

    def history(self, subject_id: str, since: datetime | None = None) -> list[ActivityRecord]:
        """Return a student's retained records, oldest first.

        Args:
            subject_id: Student to look up.
            since: Only records at or after this time.

        Returns:
            List copy of the matching records (empty for unknown students).
        """
        with self._locks.for_subject(subject_id):
            history = self._histories.get(subject_id)
            if not history:
                return []
            if since is None:
                return list(history)
            return [r for r in history if r.timestamp >= since]

    def records(self, since: datetime | None = None) -> list[ActivityRecord]:
        """Return retained records across all students."""
        result: list[ActivityRecord] = []
        for subject_id in self.subject_ids():
            result.extend(self.history(subject_id, since))
        return result

    def subject_ids(self) -> list[str]:
        return list(self._histories)

    def get_session(self, subject_id: str, session_id: str) -> SessionSummary | None:
        """Return a copy of a student's session summary, or None."""
        with self._locks.for_subject(subject_id):
            session = self._sessions.get((subject_id, session_id))
            if session is None:
                return None
            return replace(session, flagged_activity_ids=list(session.flagged_activity_ids))

    def prune_subject(self, subject_id: str, cutoff: datetime) -> tuple[int, bool]:
        """Evict one student's records older than cutoff.

        Args:
            subject_id: Student to prune.
            cutoff: Records with a timestamp before this are removed.

        Returns:
            Tuple of (records removed, student now has no records).
        """
        with self._locks.for_subject(subject_id):
            history = self._histories.get(subject_id)
            if history is None:
                return 0, True
            kept = [r for r in history if r.timestamp >= cutoff]
            removed = len(history) - len(kept)
            if removed:
                history.clear()
                history.extend(kept)
            if not history:
                del self._histories[subject_id]
                return removed, True
            return removed, False

    def prune_sessions(self, cutoff: datetime) -> int:
        """Evict session summaries idle since before cutoff.

        Returns:
            Number of sessions removed.
        """
        removed = 0
        for key, session in list(self._sessions.items()):
            with self._locks.for_subject(session.subject_id):
                if session.last_activity_at < cutoff:
                    self._sessions.pop(key, None)
                    removed += 1
        if removed:
            logger.debug("Pruned %d idle sessions", removed)
        return removed
