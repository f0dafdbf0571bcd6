"""Tests for client-side quiz progress transitions."""

import pytest

from quiz_client.progress import advance, begin, select_option, to_telemetry


class TestTransitions:
    """Each transition returns a new value and leaves the old one intact."""

    def test_begin(self):
        progress = begin([4, 3], now=100.0)
        assert progress.current == 0
        assert progress.selections == (None, None)
        assert not progress.is_finished

    def test_select_does_not_mutate(self):
        start = begin([4, 3], now=100.0)
        picked = select_option(start, 2)
        assert start.selections == (None, None)
        assert picked.selections == (2, None)

    def test_switch_counted_only_on_change(self):
        progress = begin([4], now=0.0)
        progress = select_option(progress, 1)
        progress = select_option(progress, 1)
        assert progress.switch_counts == (0,)
        progress = select_option(progress, 3)
        progress = select_option(progress, 0)
        assert progress.switch_counts == (2,)

    def test_advance_records_time(self):
        progress = select_option(begin([4, 3], now=100.0), 1)
        progress = advance(progress, now=112.5)
        assert progress.current == 1
        assert progress.answer_times == (12.5, 0.0)
        assert progress.question_shown_at == 112.5

    def test_full_run_to_telemetry(self):
        progress = begin([4, 3, 2], now=0.0)
        for choice, now in [(1, 10.0), (2, 30.0), (0, 45.0)]:
            progress = select_option(progress, choice)
            progress = advance(progress, now=now)

        assert progress.is_finished
        assert progress.choices == [1, 2, 0]
        telemetry = to_telemetry(progress)
        assert telemetry.answer_times == [10.0, 20.0, 15.0]
        assert telemetry.switch_counts == [0, 0, 0]
        assert telemetry.session_start == 0.0
        assert telemetry.session_end == 45.0


class TestInvalidTransitions:
    def test_advance_without_answer(self):
        with pytest.raises(ValueError):
            advance(begin([4], now=0.0), now=1.0)

    def test_option_out_of_range(self):
        with pytest.raises(ValueError):
            select_option(begin([3], now=0.0), 3)

    def test_no_changes_after_finish(self):
        progress = advance(select_option(begin([2], now=0.0), 0), now=5.0)
        with pytest.raises(ValueError):
            select_option(progress, 1)
        with pytest.raises(ValueError):
            advance(progress, now=6.0)

    def test_telemetry_requires_finish(self):
        with pytest.raises(ValueError):
            to_telemetry(begin([2], now=0.0))

    def test_empty_quiz(self):
        with pytest.raises(ValueError):
            begin([], now=0.0)
