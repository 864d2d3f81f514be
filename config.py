# worklog_monitoring/config.py
"""Configuration management for the Work-Log Monitoring Service"""
import os
import logging
from datetime import time

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _env_time(name: str, default: str) -> time:
    value = os.getenv(name, default)
    try:
        hours, minutes = value.split(':')[:2]
        return time(hour=int(hours), minute=int(minutes))
    except ValueError:
        logger.warning(f"Invalid time '{value}' for {name}, using {default}")
        hours, minutes = default.split(':')
        return time(hour=int(hours), minute=int(minutes))


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class BackendConfig:
    """Remote work-log backend configuration"""
    def __init__(self):
        self.api_url = os.getenv('WORKLOG_API_URL', 'http://localhost:3000').rstrip('/')
        self.endpoint = os.getenv('WORKLOG_ENDPOINT', '/control-terminales/tiempo-real-nueva')
        self.request_timeout = float(os.getenv('WORKLOG_REQUEST_TIMEOUT', '12'))
        # Compatibility shim: values above 1e9 are read as milliseconds
        self.legacy_millis_heuristic = _env_flag('WORKLOG_LEGACY_MILLIS_HEURISTIC', '0')

    @property
    def url(self) -> str:
        return f"{self.api_url}{self.endpoint}"


class PollingConfig:
    """Poll scheduler cadence"""
    def __init__(self):
        self.foreground_interval = float(os.getenv('WORKLOG_POLL_FOREGROUND_SECONDS', '4'))
        self.background_interval = float(os.getenv('WORKLOG_POLL_BACKGROUND_SECONDS', '15'))
        self.highlight_seconds = float(os.getenv('WORKLOG_HIGHLIGHT_SECONDS', '1'))
        self.autostart = _env_flag('WORKLOG_POLL_AUTOSTART', '1')


class ShiftConfig:
    """Fixed single-shift model used for time accounting"""
    def __init__(self):
        self.shift_start = _env_time('WORKLOG_SHIFT_START', '06:30')
        self.shift_seconds = int(os.getenv('WORKLOG_SHIFT_SECONDS', '27000'))
        self.break_start = _env_time('WORKLOG_BREAK_START', '09:30')
        self.break_end = _env_time('WORKLOG_BREAK_END', '10:00')
        # Open entries are considered running until this time at most
        self.open_cutoff = _env_time('WORKLOG_OPEN_CUTOFF', '14:00')

    @property
    def break_seconds(self) -> int:
        start = self.break_start.hour * 3600 + self.break_start.minute * 60
        end = self.break_end.hour * 3600 + self.break_end.minute * 60
        return max(0, end - start)


# Task code -> display name
TASK_NAMES = {
    1: 'CORTE',
    2: 'PRE-ARMADO',
    3: 'ARMADO',
    4: 'HERRAJE',
    6: 'MATRIMONIO',
    7: 'COMPACTO',
    9: 'ACRISTALADO',
    10: 'EMBALAJE',
    11: 'OPTIMIZACION',
    12: 'REBARBA',
}

backend_config = BackendConfig()
polling_config = PollingConfig()
shift_config = ShiftConfig()
