"""
Tests for open-entry and break-overlap detection.
"""
from datetime import datetime

import pytest

from anomaly_detector import AnomalyDetector
from break_manager import BreakManager


@pytest.fixture
def detector():
    return AnomalyDetector(BreakManager(legacy_millis=False))


@pytest.mark.parametrize("end_time", [None, '', '  ', '-'])
def test_missing_end_time_is_open(detector, make_record, end_time):
    issues = detector.detect_time_issues(make_record(HoraFin=end_time, Abierta=None))
    assert issues.has_open_time is True


def test_closed_entry_outside_break(detector, make_record):
    issues = detector.detect_time_issues(make_record(HoraInicio='07:00', HoraFin='09:00'))
    assert issues.has_open_time is False
    assert issues.overlaps_break is False
    assert issues.break_overlap_seconds == 0


def test_closed_entry_crossing_break(detector, make_record):
    issues = detector.detect_time_issues(make_record(HoraInicio='09:45', HoraFin='11:00'))
    assert issues.overlaps_break is True
    assert issues.break_overlap_seconds == 900


def test_entry_starting_at_break_end_does_not_overlap(detector, make_record):
    issues = detector.detect_time_issues(make_record(HoraInicio='10:00', HoraFin='11:00'))
    assert issues.overlaps_break is False


def test_open_entry_runs_until_now(detector, make_record):
    record = make_record(HoraInicio='09:20:00', HoraFin=None)

    before = detector.detect_time_issues(record, now=datetime(2025, 10, 8, 9, 25))
    during = detector.detect_time_issues(record, now=datetime(2025, 10, 8, 9, 50))

    assert before.overlaps_break is False
    assert during.break_overlap_seconds == 1200


def test_open_entry_from_past_day_is_capped_at_cutoff(detector, make_record):
    record = make_record(HoraInicio='13:00:00', HoraFin=None)
    issues = detector.detect_time_issues(record, now=datetime(2025, 10, 9, 8, 0))
    assert issues.overlaps_break is False

    earlier = make_record(HoraInicio='09:00:00', HoraFin=None)
    issues = detector.detect_time_issues(earlier, now=datetime(2025, 10, 9, 8, 0))
    assert issues.break_overlap_seconds == 1800


def test_entry_without_start_time_never_overlaps(detector, make_record):
    issues = detector.detect_time_issues(make_record(HoraInicio=None, HoraFin='11:00'))
    assert issues.overlaps_break is False


def test_group_has_issues(detector, make_record, shift_now):
    clean = [make_record(Linea=1), make_record(Linea=2, HoraInicio='10:30', HoraFin='12:00')]
    crossing = clean + [make_record(Linea=3, HoraInicio='09:00', HoraFin='09:45')]
    unclosed = clean + [make_record(Linea=4, HoraFin='-')]

    assert detector.group_has_issues(clean, shift_now) is False
    assert detector.group_has_issues(crossing, shift_now) is True
    assert detector.group_has_issues(unclosed, shift_now) is True
