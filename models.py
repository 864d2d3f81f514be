"""Data models for the Work-Log Monitoring Service"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Set, Tuple

RecordKey = Tuple[str, str, str]

# Backend wire name -> WorkLogRecord attribute
FIELD_MAP = {
    'CodigoSerie': 'order_series',
    'CodigoNumero': 'order_number',
    'Linea': 'line_number',
    'CodigoOperario': 'operator_code',
    'OperarioNombre': 'operator_display_name',
    'CodigoTarea': 'task_code',
    'NumeroManual': 'manual_order_number',
    'Modulo': 'module_label',
    'CodigoPuesto': 'workstation_code',
    'Fecha': 'date',
    'FechaInicio': 'start_date',
    'HoraInicio': 'start_time',
    'FechaFin': 'end_date',
    'HoraFin': 'end_time',
    'TiempoDedicado': 'dedicated_seconds',
    'Abierta': 'open_flag',
}

PLACEHOLDER_VALUES = ('', '-')


def has_value(value: Any) -> bool:
    """True when a backend field carries something other than null/empty/placeholder"""
    return value is not None and str(value).strip() not in PLACEHOLDER_VALUES


class GroupDimension(str, Enum):
    """Dimensions the snapshot can be grouped by"""
    OPERATOR = 'operator'
    TASK = 'task'
    ORDER = 'order'


class GroupStatus(str, Enum):
    PARTIAL = 'partial'
    TOTAL = 'total'


@dataclass
class WorkLogRecord:
    """One shop-floor time entry as sent by the backend"""
    order_series: Optional[Any] = None
    order_number: Optional[Any] = None
    line_number: Optional[Any] = None
    operator_code: Optional[str] = None
    operator_display_name: Optional[str] = None
    task_code: Optional[Any] = None
    manual_order_number: Optional[Any] = None
    module_label: Optional[str] = None
    workstation_code: Optional[str] = None
    date: Optional[str] = None
    start_date: Optional[str] = None
    start_time: Optional[str] = None
    end_date: Optional[str] = None
    end_time: Optional[str] = None
    dedicated_seconds: Optional[Any] = None
    open_flag: Optional[Any] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> RecordKey:
        return tuple(
            '' if part is None else str(part)
            for part in (self.order_series, self.order_number, self.line_number)
        )

    @property
    def open_flag_set(self) -> bool:
        if self.open_flag is None or isinstance(self.open_flag, bool):
            return bool(self.open_flag)
        return str(self.open_flag).strip().lower() in ('1', 'true')

    @property
    def is_open(self) -> bool:
        """Open unless it has both end date and end time and no open flag"""
        return self.open_flag_set or not has_value(self.end_date) or not has_value(self.end_time)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WorkLogRecord':
        values = {}
        extra = {}
        for name, value in data.items():
            attr = FIELD_MAP.get(name)
            if attr:
                values[attr] = value
            else:
                extra[name] = value
        return cls(extra=extra, **values)

    def to_dict(self) -> Dict[str, Any]:
        result = {name: getattr(self, attr) for name, attr in FIELD_MAP.items()}
        result.update(self.extra)
        return result


@dataclass
class GroupStats:
    """Accumulable roll-up for a group; time-dependent figures are computed per query"""
    active_seconds: int
    status: GroupStatus
    remaining_seconds: int
    break_seconds: int = 0
    records_with_break: int = 0
    exceeds_shift: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'activeSeconds': self.active_seconds,
            'status': self.status.value,
            'remainingSeconds': self.remaining_seconds,
            'breakSeconds': self.break_seconds,
            'recordsWithBreak': self.records_with_break,
            'exceedsShift': self.exceeds_shift,
        }


@dataclass
class Group:
    key: str
    dimension: GroupDimension
    records: List[WorkLogRecord]
    last: WorkLogRecord
    stats: GroupStats
    has_issues: bool = False

    @property
    def record_count(self) -> int:
        return len(self.records)


@dataclass
class TimeIssues:
    has_open_time: bool
    overlaps_break: bool
    break_overlap_seconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hasOpenTime': self.has_open_time,
            'overlapsBreak': self.overlaps_break,
            'breakOverlapSeconds': self.break_overlap_seconds,
        }


@dataclass
class ElapsedTime:
    """Shift time elapsed so far, with the break window removed"""
    total: int
    break_overlap: int
    effective: int

    def to_dict(self) -> Dict[str, int]:
        return {'total': self.total, 'breakOverlap': self.break_overlap, 'effective': self.effective}


@dataclass
class DiffResult:
    changed: bool
    changed_keys: Set[RecordKey] = field(default_factory=set)


@dataclass
class FetchResult:
    """Records and optional backend statistics from one poll"""
    records: List[WorkLogRecord]
    stats: Optional[Dict[str, Any]] = None
