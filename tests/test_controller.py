"""Tests for the session lifecycle controller."""

from datetime import datetime, timedelta

import pytest

from worktime.core.controller import SessionState
from worktime.core.errors import DatabaseError, LogicError, NotFoundError
from worktime.models.command import (
    CorrectCommand,
    CorrectionField,
    HelpCommand,
    LogCommand,
    ReportCommand,
    ReportKind,
    StartCommand,
    StatusCommand,
    StopCommand,
)


def work_day(controller, clock, day, start_hour=9, stop_hour=17):
    clock.set(day, start_hour)
    controller.start()
    clock.set(day, stop_hour)
    controller.stop()


class TestStateMachine:
    """Start/Stop/Status transitions derived from stored sessions."""

    def test_initial_state_is_idle(self, controller):
        assert controller.state() is SessionState.IDLE

    def test_start_then_stop(self, controller, clock, store):
        clock.set(1, 9)
        assert controller.start() == "Started at 09:00:00"
        assert controller.state() is SessionState.RUNNING

        clock.set(1, 15)
        assert controller.stop() == "Stopped at 15:00:00"
        assert controller.state() is SessionState.IDLE
        assert store.get_last_session().end_time == datetime(2025, 7, 1, 15, 0)

    def test_start_while_running_fails_without_mutation(self, controller, clock, store):
        clock.set(1, 9)
        controller.start()
        before = store.list_sessions()

        clock.set(1, 10)
        with pytest.raises(LogicError, match="Session already started"):
            controller.start()
        assert store.list_sessions() == before

    def test_stop_on_empty_store(self, controller, store):
        with pytest.raises(LogicError, match="No previous sessions"):
            controller.stop()
        assert store.list_sessions() == []

    def test_stop_when_not_running(self, controller, clock, store):
        work_day(controller, clock, 1)
        before = store.list_sessions()

        clock.set(1, 18)
        with pytest.raises(LogicError, match="No session started"):
            controller.stop()
        assert store.list_sessions() == before

    def test_alternating_start_stop_keeps_one_open_session(self, controller, clock, store):
        for hour in range(8, 20):
            clock.set(2, hour)
            if hour % 2 == 0:
                controller.start()
            else:
                controller.stop()
            open_sessions = [s for s in store.list_sessions() if s.is_active]
            assert len(open_sessions) <= 1

    def test_status_empty_store(self, controller):
        """Empty store: status reports that there is nothing to show."""
        with pytest.raises(LogicError, match="No previous sessions"):
            controller.status()

    def test_status_running_and_stopped(self, controller, clock):
        clock.set(1, 9, 30)
        controller.start()
        assert controller.status() == "Running since 09:30:00"

        clock.set(1, 12)
        controller.stop()
        assert controller.status() == "Not running"


class TestReport:
    def test_day_report(self, controller, clock):
        """Start 09:00, stop 15:00, daily report shows six hours."""
        work_day(controller, clock, 1, 9, 15)
        assert controller.report(ReportKind.DAY) == "6.00h"

    def test_week_report(self, controller, clock):
        """Five 09:00-17:00 weekdays add up to a forty hour week."""
        for day in range(7, 12):
            work_day(controller, clock, day)
        assert controller.report(ReportKind.WEEK) == "40.00h"

    def test_day_report_only_counts_today(self, controller, clock):
        work_day(controller, clock, 7)
        work_day(controller, clock, 8, 9, 11)
        assert controller.report(ReportKind.DAY) == "2.00h"

    def test_week_report_on_sunday_excludes_previous_week(self, controller, clock):
        work_day(controller, clock, 4)
        work_day(controller, clock, 7)
        work_day(controller, clock, 13, 10, 12)
        assert controller.report(ReportKind.WEEK) == "10.00h"

    def test_month_report(self, controller, clock):
        work_day(controller, clock, 1)
        work_day(controller, clock, 15)
        work_day(controller, clock, 31, 9, 10)
        assert controller.report(ReportKind.MONTH) == "17.00h"

    def test_report_counts_running_session(self, controller, clock):
        work_day(controller, clock, 1, 8, 10)
        clock.set(1, 13)
        controller.start()
        clock.set(1, 14, 30)
        assert controller.report(ReportKind.DAY) == "3.50h"

    def test_empty_report(self, controller):
        assert controller.report(ReportKind.MONTH) == "0.00h"


class TestCorrect:
    def test_correct_start_of_running_session(self, controller, clock):
        """A corrected start time shows up in status and report."""
        clock.set(1, 9)
        controller.start()
        clock.set(1, 10)

        message = controller.correct(0, CorrectionField.START, 8, 15)
        assert message == "Corrected start of session 1 to 2025-07-01 08:15:00"
        assert controller.status() == "Running since 08:15:00"
        assert controller.report(ReportKind.DAY) == "1.75h"

    def test_correct_end_keeps_date(self, controller, clock, store):
        clock.set(1, 22)
        controller.start()
        clock.set(2, 1)
        controller.stop()

        controller.correct(0, CorrectionField.END, 2, 30)
        assert store.get_last_session().end_time == datetime(2025, 7, 2, 2, 30)

    def test_correct_end_of_open_session_uses_start_date(self, controller, clock, store):
        clock.set(3, 9)
        controller.start()
        clock.set(3, 18)

        controller.correct(0, CorrectionField.END, 17, 0)
        session = store.get_last_session()
        assert session.end_time == datetime(2025, 7, 3, 17, 0)
        assert controller.state() is SessionState.IDLE

    def test_correct_older_session_by_position(self, controller, clock, store):
        work_day(controller, clock, 1)
        work_day(controller, clock, 2)
        work_day(controller, clock, 3)

        controller.correct(2, CorrectionField.START, 8, 0)
        first = store.list_sessions()[0]
        assert first.start_time == datetime(2025, 7, 1, 8, 0)
        assert store.get_last_session().start_time == datetime(2025, 7, 3, 9, 0)

    def test_correct_missing_position(self, controller, clock):
        work_day(controller, clock, 1)
        with pytest.raises(NotFoundError, match="No session at position 1"):
            controller.correct(1, CorrectionField.START, 8, 0)

    def test_correct_empty_store(self, controller):
        with pytest.raises(NotFoundError):
            controller.correct(0, CorrectionField.END, 8, 0)

    @pytest.mark.parametrize("hour,minute", [(24, 0), (12, 60), (-1, 0)])
    def test_correct_invalid_time(self, controller, clock, store, hour, minute):
        work_day(controller, clock, 1)
        before = store.list_sessions()

        with pytest.raises(LogicError, match="Invalid time"):
            controller.correct(0, CorrectionField.START, hour, minute)
        assert store.list_sessions() == before

    def test_inverted_correction_is_stored(self, controller, clock, store):
        work_day(controller, clock, 1)
        controller.correct(0, CorrectionField.END, 8, 0)
        session = store.get_last_session()
        assert session.end_time < session.start_time

    def test_correction_bounds(self, controller, clock):
        work_day(controller, clock, 1, 9, 12)
        work_day(controller, clock, 1, 13, 15)
        work_day(controller, clock, 1, 16, 18)

        assert controller.correction_bounds(1, CorrectionField.START) == (
            datetime(2025, 7, 1, 12, 0),
            datetime(2025, 7, 1, 15, 0),
        )
        assert controller.correction_bounds(1, CorrectionField.END) == (
            datetime(2025, 7, 1, 13, 0),
            datetime(2025, 7, 1, 16, 0),
        )
        assert controller.correction_bounds(2, CorrectionField.START) == (
            None,
            datetime(2025, 7, 1, 12, 0),
        )

    def test_correction_bounds_reads_neighbours_once(self, controller, clock, store, monkeypatch):
        work_day(controller, clock, 1, 9, 12)
        work_day(controller, clock, 1, 13, 15)
        work_day(controller, clock, 1, 16, 18)

        calls = []
        original = store.get_last_n_sessions

        def counting(n):
            calls.append(n)
            return original(n)

        monkeypatch.setattr(store, "get_last_n_sessions", counting)
        lower, upper = controller.correction_bounds(1, CorrectionField.END)
        assert upper == datetime(2025, 7, 1, 16, 0)
        assert calls == [3]

    def test_correction_bounds_of_latest_session_end_at_now(self, controller, clock):
        clock.set(1, 9)
        controller.start()
        clock.set(1, 11)
        assert controller.correction_bounds(0, CorrectionField.END) == (
            datetime(2025, 7, 1, 9, 0),
            datetime(2025, 7, 1, 11, 0),
        )


class TestLog:
    def test_log_lists_newest_first(self, controller, clock):
        work_day(controller, clock, 1)
        clock.set(2, 9)
        controller.start()
        clock.set(2, 10, 30)

        entries = controller.log(5)
        assert [entry.position for entry in entries] == [0, 1]
        assert entries[0].session.start_time == datetime(2025, 7, 2, 9, 0)
        assert entries[0].session.is_active
        assert entries[0].elapsed == timedelta(minutes=90)
        assert entries[1].session.end_time == datetime(2025, 7, 1, 17, 0)
        assert entries[1].elapsed == timedelta(hours=8)

    def test_log_respects_limit(self, controller, clock):
        for day in (1, 2, 3):
            work_day(controller, clock, day)
        entries = controller.log(2)
        assert [entry.session.start_time.day for entry in entries] == [3, 2]

    def test_log_empty_store(self, controller):
        with pytest.raises(LogicError, match="No previous sessions"):
            controller.log(5)


class TestHandle:
    def test_handle_sends_message_to_sink(self, controller, sink):
        result = controller.handle(StartCommand(), sink)
        assert result.ok
        assert sink.results == [result]
        assert result.message == "Started at 09:00:00"

    def test_handle_sends_log_entries_to_sink(self, controller, clock, sink):
        work_day(controller, clock, 1)
        result = controller.handle(LogCommand(limit=3), sink)
        assert result.ok
        assert result.message is None
        assert len(result.entries) == 1
        assert sink.results == [result]

    def test_handle_reports_logic_error(self, controller, sink):
        result = controller.handle(StatusCommand(), sink)
        assert not result.ok
        assert isinstance(result.error, LogicError)
        assert str(result.error) == "No previous sessions"

    def test_handle_reports_database_error(self, controller, store, sink):
        store.close()
        result = controller.handle(StopCommand(), sink)
        assert isinstance(result.error, DatabaseError)

    def test_execute_dispatches_every_core_command(self, controller, clock):
        assert controller.execute(StartCommand()).message.startswith("Started")
        assert controller.execute(StatusCommand()).message.startswith("Running")
        clock.set(1, 10)
        assert controller.execute(StopCommand()).message.startswith("Stopped")
        assert controller.execute(ReportCommand(kind=ReportKind.WEEK)).message == "1.00h"
        assert controller.execute(LogCommand(limit=1)).entries[0].position == 0
        assert controller.execute(
            CorrectCommand(position=0, field=CorrectionField.END, hour=11, minute=0)
        ).message.startswith("Corrected end")

    def test_execute_rejects_front_end_commands(self, controller):
        with pytest.raises(AssertionError):
            controller.execute(HelpCommand())
