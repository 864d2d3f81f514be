"""HTTP access to the work-log polling endpoint"""
from typing import Any, Dict, List, Optional
import logging

import requests

from config import BackendConfig, backend_config
from models import FetchResult, WorkLogRecord

logger = logging.getLogger(__name__)


class WorkLogFetchError(RuntimeError):
    """A poll that produced nothing usable; the current snapshot stays in place"""


class TransportError(WorkLogFetchError):
    def __init__(self, message: str, status_code: int = -1):
        super().__init__(message)
        self.status_code = status_code


class MalformedPayloadError(WorkLogFetchError):
    pass


def parse_payload(payload: Any) -> FetchResult:
    """
    Accept either a bare list of records or an envelope {data: [...], stats: {...}}.

    Entries that are not JSON objects are skipped; anything else missing from a
    record is left to the defaults of the engine.
    """
    stats = None
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict) and isinstance(payload.get('data'), list):
        rows = payload['data']
        if isinstance(payload.get('stats'), dict):
            stats = payload['stats']
    else:
        raise MalformedPayloadError("Response is neither a record list nor a data envelope")

    records: List[WorkLogRecord] = []
    skipped = 0
    for row in rows:
        if not isinstance(row, dict):
            skipped += 1
            continue
        records.append(WorkLogRecord.from_dict(row))
    if skipped:
        logger.warning(f"Skipped {skipped} malformed rows in work-log payload")

    return FetchResult(records=records, stats=stats)


class WorkLogClient:
    """Thin wrapper around the polling endpoint"""

    def __init__(self, config: BackendConfig = backend_config, session: Optional[requests.Session] = None):
        self.config = config
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def fetch(self, target_date: Optional[str] = None) -> FetchResult:
        """
        Fetch the current work-log rows.

        Args:
            target_date: Optional 'YYYY-MM-DD' sent verbatim as `fecha`

        Raises:
            TransportError: network failure, non-success status or non-JSON body
            MalformedPayloadError: JSON that carries no record list
        """
        params: Dict[str, str] = {}
        if target_date:
            params['fecha'] = target_date

        try:
            response = self._session.get(
                self.config.url,
                params=params,
                timeout=self.config.request_timeout
            )
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc

        if not response.ok:
            raise TransportError(f"Backend responded {response.status_code}", response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError("Backend returned a non-JSON body", response.status_code) from exc

        return parse_payload(payload)

    def close(self):
        self._session.close()
