"""Monitor state and the operations that apply poll results and build group views"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set
import logging
import time

from config import polling_config
from data_processor import WorkLogGrouper, group_key, group_label
from models import DiffResult, ElapsedTime, FetchResult, Group, GroupDimension
from snapshot import ChangeDetector, Snapshot, SnapshotStore
from utils import format_hours_minutes, parse_target_date

logger = logging.getLogger(__name__)

# Backend stats field -> count name
BACKEND_COUNT_FIELDS = {
    'operadoresUnicos': GroupDimension.OPERATOR.value,
    'tareasUnicas': GroupDimension.TASK.value,
    'pedidosUnicos': GroupDimension.ORDER.value,
    'total': 'total',
    'abiertas': 'open',
}


@dataclass
class MonitorState:
    """Everything the poll cycles share; the snapshot is only ever replaced whole"""
    store: SnapshotStore = field(default_factory=SnapshotStore)
    fetch_count: int = 0
    version: int = 0
    loading: bool = False
    outstanding: int = 0
    last_error: Optional[str] = None
    last_success: Optional[datetime] = None
    backend_stats: Optional[Dict[str, Any]] = None
    date_override: Optional[str] = None
    generation: int = 0
    highlights: Dict[GroupDimension, Dict[str, float]] = field(default_factory=dict)
    group_cache: Dict[GroupDimension, List[Group]] = field(default_factory=dict)
    count_cache: Optional[Dict[str, int]] = None

    @property
    def snapshot(self) -> Snapshot:
        return self.store.current


class WorkLogMonitor:
    """Apply fetched records to the snapshot and expose grouped, annotated views"""

    def __init__(
        self,
        grouper: Optional[WorkLogGrouper] = None,
        highlight_seconds: float = polling_config.highlight_seconds,
        clock: Callable[[], float] = time.monotonic,
        now_factory: Callable[[], datetime] = datetime.now
    ):
        self.grouper = grouper or WorkLogGrouper()
        self.break_manager = self.grouper.break_manager
        self.anomaly_detector = self.grouper.anomaly_detector
        self.highlight_seconds = highlight_seconds
        self.clock = clock
        self.now = now_factory
        self.state = MonitorState()

    # Request bookkeeping

    def begin_request(self) -> int:
        self.state.fetch_count += 1
        self.state.outstanding += 1
        self.state.loading = True
        logger.debug(f"Poll #{self.state.fetch_count} started (generation {self.state.generation})")
        return self.state.generation

    def finish_request(self):
        """Loading stays set while any other request is still outstanding"""
        self.state.outstanding = max(0, self.state.outstanding - 1)
        self.state.loading = self.state.outstanding > 0

    def is_current(self, generation: int) -> bool:
        return generation == self.state.generation

    def set_date_override(self, target_date: Optional[str]) -> int:
        """
        Change the inspected day; returns the new request generation.

        Raises:
            ValueError: target_date is not 'YYYY-MM-DD'
        """
        if target_date:
            parse_target_date(target_date)
        else:
            target_date = None
        if target_date != self.state.date_override:
            self.state.date_override = target_date
            self.state.generation += 1
            logger.info(f"Date override set to {target_date or 'today'}")
        return self.state.generation

    def record_failure(self, generation: int, error: Exception):
        if not self.is_current(generation):
            logger.info(f"Ignoring failure of superseded request: {error}")
            return
        self.state.last_error = str(error)

    # Applying results

    def apply_result(self, result: FetchResult, generation: int, replace: bool = False) -> Optional[DiffResult]:
        """
        Apply one poll's records.

        Returns None when the result belongs to a superseded request, otherwise the
        diff against the previous snapshot. A replace commits without highlighting.
        """
        if not self.is_current(generation):
            logger.info(f"Discarding stale result from generation {generation}")
            return None

        state = self.state
        state.last_error = None
        state.last_success = self.now()
        self._update_backend_stats(result.stats)

        old = state.store.current
        new = SnapshotStore.build(result.records)
        diff = ChangeDetector.diff(old, new)

        if replace:
            self._commit(new)
            state.highlights.clear()
            logger.info(f"Poll #{state.fetch_count} replaced snapshot, rows={len(new)}")
            return diff

        if not diff.changed:
            logger.info(f"Poll #{state.fetch_count} found no changes")
            return diff

        self._commit(new)
        self._mark_changed(old, new, diff.changed_keys)
        logger.info(
            f"Poll #{state.fetch_count} applied {len(diff.changed_keys)} changes, rows={len(new)}"
        )
        return diff

    def _commit(self, snapshot: Snapshot):
        self.state.store.commit(snapshot)
        self.state.version += 1
        self.state.group_cache.clear()
        self.state.count_cache = None

    def _update_backend_stats(self, stats: Optional[Dict[str, Any]]):
        # A payload without stats falls back to local counts
        self.state.backend_stats = stats
        if stats is not None:
            logger.debug(f"Backend stats: total={stats.get('total')}, abiertas={stats.get('abiertas')}")

    def _mark_changed(self, old: Snapshot, new: Snapshot, changed_keys: Set):
        expires = self.clock() + self.highlight_seconds
        for dimension in GroupDimension:
            marks = self.state.highlights.setdefault(dimension, {})
            for key in changed_keys:
                for snapshot in (old, new):
                    record = snapshot.get(key)
                    if record is not None:
                        marks[group_key(record, dimension)] = expires

    def recently_changed(self, dimension: GroupDimension) -> Set[str]:
        """Group keys still inside their highlight window; expired marks are dropped"""
        marks = self.state.highlights.get(dimension, {})
        now = self.clock()
        for key in [k for k, expires in marks.items() if expires <= now]:
            del marks[key]
        return set(marks)

    # Queries

    def groups(self, dimension: GroupDimension) -> List[Group]:
        cached = self.state.group_cache.get(dimension)
        if cached is None:
            cached = self.grouper.group(self.state.snapshot, dimension, self.now())
            self.state.group_cache[dimension] = cached
        return cached

    def find_group(self, dimension: GroupDimension, key: str) -> Optional[Group]:
        for group in self.groups(dimension):
            if group.key == key:
                return group
        return None

    def elapsed(self) -> ElapsedTime:
        target = parse_target_date(self.state.date_override) if self.state.date_override else None
        return self.break_manager.compute_effective_elapsed(self.now(), target)

    def counts(self) -> Dict[str, int]:
        """Distinct counts, taken from backend stats when present, field by field"""
        backend = {}
        for name, count_name in BACKEND_COUNT_FIELDS.items():
            value = (self.state.backend_stats or {}).get(name)
            if value is None or isinstance(value, bool):
                continue
            try:
                backend[count_name] = int(float(value))
            except (TypeError, ValueError, OverflowError):
                logger.warning(f"Ignoring non-numeric backend stat {name}={value!r}")

        if len(backend) == len(BACKEND_COUNT_FIELDS):
            return backend

        if self.state.count_cache is None:
            self.state.count_cache = self.grouper.distinct_counts(self.state.snapshot)
        counts = dict(self.state.count_cache)
        counts.update(backend)
        return counts

    def group_view(self, group: Group, elapsed: ElapsedTime, highlighted: Set[str]) -> Dict[str, Any]:
        active = group.stats.active_seconds
        stats = group.stats.to_dict()
        stats.update({
            'percentActivity': self.break_manager.percent_activity(active, elapsed.effective),
            'inactiveSeconds': self.break_manager.inactive_seconds(active, elapsed.effective),
            'activeLabel': format_hours_minutes(active),
            'remainingLabel': format_hours_minutes(group.stats.remaining_seconds),
        })
        return {
            'key': group.key,
            'label': group_label(group.dimension, group.key),
            'dimension': group.dimension.value,
            'count': group.record_count,
            'last': group.last.to_dict(),
            'stats': stats,
            'hasIssues': group.has_issues,
            'recentlyChanged': group.key in highlighted,
        }

    def group_views(self, dimension: GroupDimension) -> List[Dict[str, Any]]:
        elapsed = self.elapsed()
        highlighted = self.recently_changed(dimension)
        return [self.group_view(group, elapsed, highlighted) for group in self.groups(dimension)]

    def group_detail(self, dimension: GroupDimension, key: str) -> Optional[Dict[str, Any]]:
        group = self.find_group(dimension, key)
        if group is None:
            return None
        now = self.now()
        view = self.group_view(group, self.elapsed(), self.recently_changed(dimension))
        view['records'] = [
            {**record.to_dict(), 'issues': self.anomaly_detector.detect_time_issues(record, now).to_dict()}
            for record in group.records
        ]
        return view

    def status(self) -> Dict[str, Any]:
        state = self.state
        return {
            'fetchCount': state.fetch_count,
            'version': state.version,
            'rows': len(state.snapshot),
            'loading': state.loading,
            'lastError': state.last_error,
            'lastSuccess': state.last_success.isoformat() if state.last_success else None,
            'dateOverride': state.date_override,
        }
