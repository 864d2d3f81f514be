"""Work-log grouping and group-level roll-ups"""
from typing import Any, Callable, Dict, Iterable, List, Optional
from datetime import datetime
import logging
import re

from anomaly_detector import AnomalyDetector
from break_manager import BreakManager
from config import TASK_NAMES
from models import Group, GroupDimension, WorkLogRecord, has_value
from snapshot import Snapshot
from utils import combine_date_time, normalize_time

logger = logging.getLogger(__name__)

SENTINELS = {
    GroupDimension.OPERATOR: 'SIN_OPERARIO',
    GroupDimension.TASK: 'SIN_TAREA',
    GroupDimension.ORDER: 'SIN_PEDIDO',
}

_EPOCH = datetime(1970, 1, 1)
_OPERATOR_SPLIT = re.compile(r'[\s/]+')


def _text_or_sentinel(value: Any, sentinel: str) -> str:
    if value is None or str(value).strip() == '':
        return sentinel
    return str(value)


def operator_key(record: WorkLogRecord) -> str:
    """First token of the operator name (or code), upper-cased"""
    sentinel = SENTINELS[GroupDimension.OPERATOR]
    value = record.operator_display_name or record.operator_code
    if not value:
        return sentinel
    text = str(value).strip()
    if not text:
        return sentinel
    first = _OPERATOR_SPLIT.split(text)[0]
    return first.upper() if first else sentinel


def task_key(record: WorkLogRecord) -> str:
    return _text_or_sentinel(record.task_code, SENTINELS[GroupDimension.TASK])


def order_key(record: WorkLogRecord) -> str:
    return _text_or_sentinel(record.manual_order_number, SENTINELS[GroupDimension.ORDER])


KEY_FUNCTIONS: Dict[GroupDimension, Callable[[WorkLogRecord], str]] = {
    GroupDimension.OPERATOR: operator_key,
    GroupDimension.TASK: task_key,
    GroupDimension.ORDER: order_key,
}


def group_key(record: WorkLogRecord, dimension: GroupDimension) -> str:
    return KEY_FUNCTIONS[dimension](record)


def group_label(dimension: GroupDimension, key: str) -> str:
    """Human label for a group key; task codes map to task names"""
    if dimension == GroupDimension.TASK:
        try:
            return TASK_NAMES.get(int(key), key)
        except ValueError:
            return key
    return key


def record_timestamp(record: WorkLogRecord) -> float:
    """
    Seconds since epoch for a record's start, used to pick a group's latest entry.

    Date comes from start date, then the main date, then end date; time from start
    time, then end time, then midnight. Unparseable records return 0.
    """
    day = next(
        (value for value in (record.start_date, record.date, record.end_date) if has_value(value)),
        None
    )
    if day is None:
        return 0
    moment = next(
        (value for value in (record.start_time, record.end_time) if has_value(value)),
        '00:00:00'
    )
    combined = combine_date_time(day, normalize_time(moment))
    if combined is None:
        return 0
    return (combined - _EPOCH).total_seconds()


class WorkLogGrouper:
    """Project a snapshot into groups along one dimension"""

    def __init__(
        self,
        break_manager: Optional[BreakManager] = None,
        anomaly_detector: Optional[AnomalyDetector] = None
    ):
        self.break_manager = break_manager or BreakManager()
        self.anomaly_detector = anomaly_detector or AnomalyDetector(self.break_manager)

    def group(
        self,
        snapshot: Snapshot,
        dimension: GroupDimension,
        now: Optional[datetime] = None
    ) -> List[Group]:
        buckets: Dict[str, List[WorkLogRecord]] = {}
        for record in snapshot:
            buckets.setdefault(group_key(record, dimension), []).append(record)

        groups = []
        for key, records in buckets.items():
            last = records[0]
            last_ts = record_timestamp(last)
            for record in records[1:]:
                ts = record_timestamp(record)
                if ts > last_ts:
                    last, last_ts = record, ts

            groups.append(Group(
                key=key,
                dimension=dimension,
                records=records,
                last=last,
                stats=self.break_manager.compute_group_stats(records, dimension, now),
                has_issues=self.anomaly_detector.group_has_issues(records, now)
            ))

        groups.sort(key=lambda g: g.key)
        logger.debug(f"Grouped {len(snapshot)} records into {len(groups)} {dimension.value} groups")
        return groups

    @staticmethod
    def distinct_counts(records: Iterable[WorkLogRecord]) -> Dict[str, int]:
        """Distinct group keys per dimension, plus total and open record counts"""
        keys = {dimension: set() for dimension in GroupDimension}
        total = 0
        open_count = 0
        for record in records:
            total += 1
            if record.is_open:
                open_count += 1
            for dimension in GroupDimension:
                keys[dimension].add(group_key(record, dimension))

        counts = {dimension.value: len(values) for dimension, values in keys.items()}
        counts['total'] = total
        counts['open'] = open_count
        return counts
