"""Integrity checks for work-log entries: unclosed entries and break overlap"""
from datetime import datetime
from typing import Iterable, Optional

from break_manager import BreakManager
from models import TimeIssues, WorkLogRecord, has_value


class AnomalyDetector:
    def __init__(self, break_manager: Optional[BreakManager] = None):
        self.break_manager = break_manager or BreakManager()

    def detect_time_issues(self, record: WorkLogRecord, now: Optional[datetime] = None) -> TimeIssues:
        """
        Flag an entry that is still open or that runs through the break window.

        An entry without an end time (missing, empty or '-') is open; an open entry
        is taken to run until now, capped at the end-of-day cutoff.
        """
        overlap = self.break_manager.record_break_overlap(record, now)
        return TimeIssues(
            has_open_time=not has_value(record.end_time),
            overlaps_break=overlap > 0,
            break_overlap_seconds=overlap
        )

    def group_has_issues(self, records: Iterable[WorkLogRecord], now: Optional[datetime] = None) -> bool:
        for record in records:
            issues = self.detect_time_issues(record, now)
            if issues.has_open_time or issues.overlaps_break:
                return True
        return False
