"""Tests for timer duration arithmetic."""

from datetime import datetime, timedelta
from types import SimpleNamespace

from kanvaro.services.timer_math import (
    apply_rounding_rules,
    calculate_current_duration,
    format_duration,
    pause_minutes,
    timer_duration,
)

START = datetime(2026, 3, 2, 9, 0, 0)


class TestCalculateCurrentDuration:
    """Tests for calculate_current_duration."""

    def test_elapsed_minutes(self) -> None:
        assert calculate_current_duration(START, 0, START + timedelta(minutes=60)) == 60

    def test_paused_time_is_subtracted(self) -> None:
        assert calculate_current_duration(START, 20, START + timedelta(minutes=60)) == 40

    def test_same_instant_is_zero(self) -> None:
        assert calculate_current_duration(START, 0, START) == 0

    def test_never_negative(self) -> None:
        """Paused time larger than elapsed time clamps to zero."""
        assert calculate_current_duration(START, 90, START + timedelta(minutes=60)) == 0

    def test_fractional_minutes(self) -> None:
        assert calculate_current_duration(START, 0, START + timedelta(seconds=90)) == 1.5


class TestTimerDuration:
    """Tests for timer_duration on timer rows."""

    def test_running_timer_uses_now(self) -> None:
        timer = SimpleNamespace(start_time=START, total_paused_duration=5, paused_at=None)
        assert timer_duration(timer, START + timedelta(minutes=30)) == 25

    def test_paused_timer_is_frozen(self) -> None:
        timer = SimpleNamespace(
            start_time=START,
            total_paused_duration=0,
            paused_at=START + timedelta(minutes=45),
        )
        assert timer_duration(timer, START + timedelta(hours=5)) == 45

    def test_pause_minutes(self) -> None:
        assert pause_minutes(START, START + timedelta(minutes=12)) == 12
        assert pause_minutes(START + timedelta(minutes=5), START) == 0


class TestApplyRoundingRules:
    """Tests for apply_rounding_rules."""

    def test_disabled_rounds_to_nearest_minute(self) -> None:
        assert apply_rounding_rules(52.4, enabled=False) == 52

    def test_round_up_to_increment(self) -> None:
        assert apply_rounding_rules(52, enabled=True, increment=15, round_up=True) == 60

    def test_round_down_to_increment(self) -> None:
        assert apply_rounding_rules(52, enabled=True, increment=15, round_up=False) == 45

    def test_exact_multiple_unchanged(self) -> None:
        assert apply_rounding_rules(45, enabled=True, increment=15, round_up=True) == 45

    def test_zero_stays_zero(self) -> None:
        assert apply_rounding_rules(0, enabled=True, increment=15, round_up=True) == 0

    def test_zero_increment_disables_rounding(self) -> None:
        assert apply_rounding_rules(52, enabled=True, increment=0) == 52


class TestFormatDuration:
    """Tests for format_duration."""

    def test_hours_and_minutes(self) -> None:
        assert format_duration(125) == "2h 5m"

    def test_under_an_hour(self) -> None:
        assert format_duration(45) == "0h 45m"

    def test_whole_hours(self) -> None:
        assert format_duration(480) == "8h 0m"
