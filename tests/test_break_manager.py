"""
Tests for shift time accounting around the lunch break.
"""
from datetime import date, datetime, timedelta

import pytest

from break_manager import BreakManager
from models import GroupDimension, GroupStatus
from utils import format_duration, format_hours_minutes, normalize_dedicated_seconds


@pytest.fixture
def manager():
    return BreakManager(legacy_millis=False)


def test_elapsed_before_break(manager):
    elapsed = manager.compute_effective_elapsed(datetime(2025, 10, 8, 9, 0))
    assert (elapsed.total, elapsed.break_overlap, elapsed.effective) == (9000, 0, 9000)


def test_elapsed_after_full_break(manager):
    elapsed = manager.compute_effective_elapsed(datetime(2025, 10, 8, 10, 15))
    assert (elapsed.total, elapsed.break_overlap, elapsed.effective) == (13500, 1800, 11700)


def test_elapsed_inside_break(manager):
    elapsed = manager.compute_effective_elapsed(datetime(2025, 10, 8, 9, 40))
    assert elapsed.total == 11400
    assert elapsed.break_overlap == 600
    assert elapsed.effective == 10800


def test_elapsed_before_shift_is_zero(manager):
    elapsed = manager.compute_effective_elapsed(datetime(2025, 10, 8, 5, 0))
    assert (elapsed.total, elapsed.break_overlap, elapsed.effective) == (0, 0, 0)


@pytest.mark.parametrize("hour, minute", [(14, 0), (14, 1), (18, 30), (23, 59)])
def test_total_caps_at_shift_duration(manager, hour, minute):
    elapsed = manager.compute_effective_elapsed(datetime(2025, 10, 8, hour, minute))
    assert elapsed.total == 27000
    assert elapsed.break_overlap == 1800
    assert elapsed.effective == 25200


def test_break_overlap_bounded_through_the_day(manager):
    now = datetime(2025, 10, 8, 0, 0)
    while now.date() == date(2025, 10, 8):
        elapsed = manager.compute_effective_elapsed(now)
        assert 0 <= elapsed.break_overlap <= elapsed.total <= 27000
        assert elapsed.effective == elapsed.total - elapsed.break_overlap
        assert elapsed.effective >= 0
        now += timedelta(minutes=7)


def test_historical_day_counts_whole_shift(manager):
    elapsed = manager.compute_effective_elapsed(datetime(2025, 10, 8, 8, 0), target_date=date(2025, 10, 7))
    assert (elapsed.total, elapsed.break_overlap, elapsed.effective) == (27000, 1800, 25200)


def test_override_for_today_uses_live_figures(manager):
    elapsed = manager.compute_effective_elapsed(datetime(2025, 10, 8, 9, 0), target_date=date(2025, 10, 8))
    assert elapsed.total == 9000


def test_open_record_makes_group_partial(manager, make_record):
    record = make_record(HoraFin=None, Abierta=None)
    stats = manager.compute_group_stats([record], now=datetime(2025, 10, 8, 8, 30))

    assert stats.status == GroupStatus.PARTIAL


def test_open_flag_alone_makes_group_partial(manager, make_record):
    stats = manager.compute_group_stats([make_record(Abierta=1)])
    assert stats.status == GroupStatus.PARTIAL


def test_closed_records_total_status(manager, make_record):
    records = [make_record(Linea=1, TiempoDedicado=1000), make_record(Linea=2, TiempoDedicado=None)]
    stats = manager.compute_group_stats(records)

    assert stats.status == GroupStatus.TOTAL
    assert stats.active_seconds == 1000
    assert stats.remaining_seconds == 26000


def test_invalid_dedicated_time_counts_as_zero(manager, make_record):
    records = [
        make_record(Linea=1, TiempoDedicado='abc'),
        make_record(Linea=2, TiempoDedicado=-50),
        make_record(Linea=3, TiempoDedicado=120.9),
    ]
    assert manager.compute_group_stats(records).active_seconds == 120


def test_remaining_never_negative_and_shift_excess_for_operators(manager, make_record):
    records = [make_record(Linea=i, TiempoDedicado=10000) for i in range(3)]

    by_operator = manager.compute_group_stats(records, GroupDimension.OPERATOR)
    by_task = manager.compute_group_stats(records, GroupDimension.TASK)

    assert by_operator.remaining_seconds == 0
    assert by_operator.exceeds_shift is True
    assert by_task.exceeds_shift is False


def test_break_seconds_reported_but_not_deducted(manager, make_record):
    record = make_record(HoraInicio='09:00:00', HoraFin='10:30:00', TiempoDedicado=5400)
    stats = manager.compute_group_stats([record])

    assert stats.active_seconds == 5400
    assert stats.break_seconds == 1800
    assert stats.records_with_break == 1


@pytest.mark.parametrize("active, effective, expected", [
    (0, 0, 0),
    (500, 0, 0),
    (5400, 10800, 50),
    (1, 3, 33),
    (2, 3, 67),
    (20000, 10000, 100),
])
def test_percent_activity(active, effective, expected):
    assert BreakManager.percent_activity(active, effective) == expected


def test_percent_activity_bounds():
    for active in range(0, 30000, 1250):
        for effective in range(0, 30000, 1750):
            assert 0 <= BreakManager.percent_activity(active, effective) <= 100


def test_inactive_seconds():
    assert BreakManager.inactive_seconds(3000, 10000) == 7000
    assert BreakManager.inactive_seconds(12000, 10000) == 0


def test_millisecond_shim_is_opt_in():
    assert normalize_dedicated_seconds(2_000_000_000) == 2_000_000_000
    assert normalize_dedicated_seconds(2_000_000_000, legacy_millis=True) == 2_000_000
    assert normalize_dedicated_seconds(660, legacy_millis=True) == 660


def test_duration_labels():
    assert format_hours_minutes(3900) == '1h 05m'
    assert format_hours_minutes(None) == '-'
    assert format_duration(660) == '11 minutos - 0 segundos'
    assert format_duration(7260) == '2 horas - 1 minutos'
    assert format_duration(2 * 86400 + 3600) == '2 dias - 1 horas - 0 minutos'
