# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the activity log."""

from dataclasses import replace

import pytest

from tutorwatch.core.monitoring.activity_log import ActivityLog


@pytest.fixture
def log() -> ActivityLog:
    """Provide an activity log capped at five records per student."""
    return ActivityLog(max_per_subject=5)


class TestActivityLog:
    """Tests for appends and reads."""

    def test_history_is_ordered(self, log, make_record, sample_student_id, clock) -> None:
        """Test that records come back oldest first."""
        first = make_record()
        clock.advance(1)
        second = make_record()
        log.append(first)
        log.append(second)

        assert [r.id for r in log.history(sample_student_id)] == [first.id, second.id]

    def test_bounded_per_student(self, log, make_record, sample_student_id) -> None:
        """Test that the oldest records are dropped past the cap."""
        records = [make_record() for _ in range(7)]
        for record in records:
            log.append(record)

        assert [r.id for r in log.history(sample_student_id)] == [r.id for r in records[2:]]
        assert len(log) == 5

    def test_history_since(self, log, make_record, sample_student_id, clock) -> None:
        """Test filtering by time."""
        log.append(make_record())
        clock.advance(100)
        recent = make_record()
        log.append(recent)

        assert [r.id for r in log.history(sample_student_id, since=clock())] == [recent.id]

    def test_unknown_student(self, log) -> None:
        """Test that an unknown student has an empty history."""
        assert log.history("nobody") == []

    def test_cap_must_be_positive(self) -> None:
        """Test that a zero cap is rejected."""
        with pytest.raises(ValueError):
            ActivityLog(max_per_subject=0)


class TestSessions:
    """Tests for session summaries."""

    def test_session_counters(
        self, log, make_record, sample_student_id, sample_session_id
    ) -> None:
        """Test that summaries follow appended records."""
        log.append(replace(make_record(), risk_score=1.5))
        flagged = replace(make_record(), risk_score=2.0, flagged=True)
        log.append(flagged)

        summary = log.get_session(sample_student_id, sample_session_id)

        assert summary.activity_count == 2
        assert summary.risk_score == 3.5
        assert summary.flagged_activity_ids == [flagged.id]

    def test_summary_is_a_copy(
        self, log, make_record, sample_student_id, sample_session_id
    ) -> None:
        """Test that readers cannot mutate the stored summary."""
        log.append(make_record())
        log.get_session(sample_student_id, sample_session_id).flagged_activity_ids.append(
            "forged"
        )

        assert log.get_session(sample_student_id, sample_session_id).flagged_activity_ids == []

    def test_shared_session_id_is_tracked_per_student(
        self, log, make_record, sample_session_id
    ) -> None:
        """Test that two students reusing a session id keep separate summaries."""
        log.append(replace(make_record(subject_id="alice"), risk_score=1.0))
        log.append(replace(make_record(subject_id="bob"), risk_score=25.0))

        alice = log.get_session("alice", sample_session_id)
        bob = log.get_session("bob", sample_session_id)

        assert (alice.subject_id, alice.activity_count, alice.risk_score) == ("alice", 1, 1.0)
        assert (bob.subject_id, bob.activity_count, bob.risk_score) == ("bob", 1, 25.0)
        assert log.session_count == 2

    def test_unknown_student_session(self, log, make_record, sample_session_id) -> None:
        """Test that a session id is not visible under another student."""
        log.append(make_record(subject_id="alice"))

        assert log.get_session("bob", sample_session_id) is None


class TestPruning:
    """Tests for retention pruning."""

    def test_prune_subject(self, log, make_record, sample_student_id, clock) -> None:
        """Test that old records go and the student survives with recent ones."""
        log.append(make_record())
        clock.advance(10)
        log.append(make_record())

        assert log.prune_subject(sample_student_id, clock()) == (1, False)
        assert len(log.history(sample_student_id)) == 1

    def test_prune_subject_empties(self, log, make_record, sample_student_id, clock) -> None:
        """Test that a fully expired student is dropped."""
        log.append(make_record())
        clock.advance(10)

        assert log.prune_subject(sample_student_id, clock()) == (1, True)
        assert log.subject_ids() == []

    def test_prune_tolerates_out_of_order(
        self, log, make_record, sample_student_id, start_time, clock
    ) -> None:
        """Test that an older record appended late is still evicted."""
        clock.advance(100)
        log.append(make_record())
        log.append(make_record(timestamp=start_time))

        assert log.prune_subject(sample_student_id, clock()) == (1, False)

    def test_prune_sessions(self, log, make_record, clock) -> None:
        """Test that idle sessions are evicted."""
        log.append(make_record())
        clock.advance(10)

        assert log.prune_sessions(clock()) == 1
        assert log.session_count == 0
