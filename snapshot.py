"""Snapshot store and change detection for polled work-log records"""
from typing import Dict, Iterable, Iterator, List, Optional
import logging

from models import DiffResult, RecordKey, WorkLogRecord

logger = logging.getLogger(__name__)


class Snapshot:
    """Immutable keyed view of the latest known record per composite key"""

    def __init__(self, records: Optional[Dict[RecordKey, WorkLogRecord]] = None):
        self._records = dict(records or {})

    def get(self, key: RecordKey) -> Optional[WorkLogRecord]:
        return self._records.get(key)

    def values(self) -> List[WorkLogRecord]:
        return list(self._records.values())

    def keys(self) -> List[RecordKey]:
        return list(self._records.keys())

    def __contains__(self, key: RecordKey) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[WorkLogRecord]:
        return iter(self._records.values())


class SnapshotStore:
    """Holds the current snapshot; only ever replaced wholesale"""

    def __init__(self):
        self._current = Snapshot()

    @property
    def current(self) -> Snapshot:
        return self._current

    @staticmethod
    def build(records: Iterable[WorkLogRecord]) -> Snapshot:
        """Key records by identity; a later duplicate replaces an earlier one"""
        keyed: Dict[RecordKey, WorkLogRecord] = {}
        duplicates = 0
        for record in records:
            if record.key in keyed:
                duplicates += 1
            keyed[record.key] = record
        if duplicates:
            logger.debug(f"Collapsed {duplicates} duplicate record keys")
        return Snapshot(keyed)

    def replace(self, records: Iterable[WorkLogRecord]) -> Snapshot:
        self._current = self.build(records)
        return self._current

    def commit(self, snapshot: Snapshot) -> Snapshot:
        self._current = snapshot
        return snapshot

    def values(self) -> List[WorkLogRecord]:
        return self._current.values()

    def get(self, key: RecordKey) -> Optional[WorkLogRecord]:
        return self._current.get(key)


class ChangeDetector:
    """Compare two snapshots by key membership and deep equality"""

    @staticmethod
    def diff(old: Snapshot, new: Snapshot) -> DiffResult:
        changed_keys = set()
        for record in new:
            previous = old.get(record.key)
            if previous is None or previous != record:
                changed_keys.add(record.key)
        for key in old.keys():
            if key not in new:
                changed_keys.add(key)
        return DiffResult(changed=bool(changed_keys), changed_keys=changed_keys)
