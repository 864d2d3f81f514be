import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add project root so the flat modules import
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import WorkLogRecord  # noqa: E402

SHIFT_DAY = '2025-10-08'


def _row(**overrides):
    row = {
        'CodigoSerie': 'S1',
        'CodigoNumero': 100,
        'Linea': 1,
        'CodigoOperario': 'OP01',
        'OperarioNombre': 'Juan Perez',
        'CodigoTarea': '3',
        'NumeroManual': 'P-2001',
        'Modulo': 'M1',
        'CodigoPuesto': 'PT1',
        'Fecha': SHIFT_DAY,
        'FechaInicio': SHIFT_DAY,
        'HoraInicio': '07:00:00',
        'FechaFin': SHIFT_DAY,
        'HoraFin': '08:00:00',
        'TiempoDedicado': 3600,
        'Abierta': 0,
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_row():
    return _row


@pytest.fixture
def make_record():
    def factory(**overrides):
        return WorkLogRecord.from_dict(_row(**overrides))
    return factory


@pytest.fixture
def shift_now():
    return datetime(2025, 10, 8, 11, 0, 0)
