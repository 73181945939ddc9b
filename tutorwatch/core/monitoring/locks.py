# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-student lock sharding.

Updates for one student must never interleave, while different students
proceed in parallel. A fixed pool of re-entrant locks is indexed by a
stable hash of the student id, so locks never need to be created or
garbage collected as students come and go. Two students may share a
stripe; they then serialize, which is harmless.
"""

import threading
import zlib


class SubjectLocks:
    """Striped re-entrant locks keyed by student id.

    Args:
        stripes: Number of locks in the pool.
    """

    def __init__(self, stripes: int = 64) -> None:
        if stripes < 1:
            raise ValueError(f"stripes must be >= 1, got {stripes}")
        self._locks = tuple(threading.RLock() for _ in range(stripes))

    def __len__(self) -> int:
        return len(self._locks)

    def for_subject(self, subject_id: str) -> threading.RLock:
        """Return the lock guarding a student's state."""
        index = zlib.crc32(subject_id.encode("utf-8")) % len(self._locks)
        return self._locks[index]
