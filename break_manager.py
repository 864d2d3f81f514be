"""Shift time accounting with lunch break exclusion"""
from typing import Iterable, Optional
from datetime import date, datetime
import logging

from config import ShiftConfig, shift_config, backend_config
from models import ElapsedTime, GroupDimension, GroupStats, GroupStatus, WorkLogRecord, has_value
from utils import (
    combine_date_time,
    get_break_window,
    get_shift_window,
    interval_overlap_seconds,
    normalize_dedicated_seconds,
    parse_date_part,
)

logger = logging.getLogger(__name__)


class BreakManager:
    """Compute elapsed, active and inactive shift time around the fixed break window"""

    def __init__(self, config: ShiftConfig = shift_config, legacy_millis: Optional[bool] = None):
        self.config = config
        self.legacy_millis = (
            backend_config.legacy_millis_heuristic if legacy_millis is None else legacy_millis
        )

    def compute_effective_elapsed(
        self,
        now: Optional[datetime] = None,
        target_date: Optional[date] = None
    ) -> ElapsedTime:
        """
        Seconds of shift elapsed at `now`, excluding the break window.

        Args:
            now: Reference instant, defaults to the current local time
            target_date: Day being inspected; a day other than now's day is a finished shift

        Returns:
            ElapsedTime with total, break_overlap and effective seconds
        """
        now = now or datetime.now()
        shift_seconds = self.config.shift_seconds

        if target_date is not None and target_date != now.date():
            break_seconds = min(self.config.break_seconds, shift_seconds)
            return ElapsedTime(
                total=shift_seconds,
                break_overlap=break_seconds,
                effective=shift_seconds - break_seconds
            )

        shift_start, _ = get_shift_window(now.date(), self.config.shift_start, shift_seconds)
        total = int((now - shift_start).total_seconds())
        total = min(max(total, 0), shift_seconds)

        break_start, break_end = get_break_window(now.date(), self.config.break_start, self.config.break_end)
        break_overlap = interval_overlap_seconds(shift_start, now, break_start, break_end)
        break_overlap = min(break_overlap, total)

        return ElapsedTime(total=total, break_overlap=break_overlap, effective=max(0, total - break_overlap))

    def record_break_overlap(self, record: WorkLogRecord, now: Optional[datetime] = None) -> int:
        """Seconds of a single record's interval that fall inside its day's break window"""
        record_day = record.start_date or record.date or record.end_date
        day = parse_date_part(record_day)
        if day is None or not has_value(record.start_time):
            return 0

        start = combine_date_time(day.isoformat(), record.start_time)
        if start is None:
            return 0

        if has_value(record.end_time):
            end_day = parse_date_part(record.end_date) or day
            end = combine_date_time(end_day.isoformat(), record.end_time)
        else:
            # Still running: count up to now, but never past the cutoff
            cutoff = datetime.combine(day, self.config.open_cutoff)
            now = now or datetime.now()
            end = min(now, cutoff)
        if end is None:
            return 0

        break_start, break_end = get_break_window(day, self.config.break_start, self.config.break_end)
        return interval_overlap_seconds(start, end, break_start, break_end)

    def compute_group_stats(
        self,
        records: Iterable[WorkLogRecord],
        dimension: Optional[GroupDimension] = None,
        now: Optional[datetime] = None
    ) -> GroupStats:
        """Accumulable statistics for a set of records"""
        active = 0.0
        has_open = False
        break_seconds = 0
        records_with_break = 0
        first_label = None

        for record in records:
            if first_label is None:
                first_label = record.operator_display_name or record.operator_code or record.task_code
            active += normalize_dedicated_seconds(record.dedicated_seconds, self.legacy_millis)
            if record.is_open:
                has_open = True
            overlap = self.record_break_overlap(record, now)
            if overlap > 0:
                break_seconds += overlap
                records_with_break += 1

        active_seconds = int(active)
        shift_seconds = self.config.shift_seconds
        exceeds_shift = dimension == GroupDimension.OPERATOR and active_seconds > shift_seconds
        if exceeds_shift:
            logger.warning(
                f"{first_label} exceeds the shift: {active_seconds / 3600:.2f}h > {shift_seconds / 3600:.2f}h"
            )

        return GroupStats(
            active_seconds=active_seconds,
            status=GroupStatus.PARTIAL if has_open else GroupStatus.TOTAL,
            remaining_seconds=max(0, shift_seconds - active_seconds),
            break_seconds=break_seconds,
            records_with_break=records_with_break,
            exceeds_shift=exceeds_shift
        )

    @staticmethod
    def percent_activity(active_seconds: float, effective_elapsed: float) -> int:
        """Share of effective elapsed time spent active, clamped to 0..100"""
        if effective_elapsed <= 0:
            return 0
        percent = int(100 * active_seconds / effective_elapsed + 0.5)
        return min(100, max(0, percent))

    @staticmethod
    def inactive_seconds(active_seconds: float, effective_elapsed: float) -> int:
        return max(0, int(effective_elapsed - active_seconds))
