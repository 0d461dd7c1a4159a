# motor_avaliacao/periods.py
import datetime
import logging

from .models import PeriodType
from .utils import get_tz

logger = logging.getLogger(__name__)


def select_periods(year_periods, rule):
    """Períodos del año que corresponden al tipo de período de la regla, en orden de secuencia.

    Si ninguno coincide retorna lista vacía; el llamador lo trata como datos insuficientes.
    """
    if rule is None:
        return []
    wanted = PeriodType.parse(rule.period_type)
    selected = [p for p in (year_periods or []) if PeriodType.parse(p.period_type) == wanted]
    if not selected:
        logger.debug("Ningún período de tipo %s para la regla %s", wanted.value, rule.id)
    return sorted(selected, key=lambda p: (p.sequence, str(p.id)))


def find_overlapping_periods(periods):
    """Pares de períodos del mismo año y tipo cuyos rangos de fechas se cruzan.

    Los períodos sin fechas no se comparan.
    """
    dated = [p for p in periods if p.start_date is not None and p.end_date is not None]
    overlaps = []
    for i, a in enumerate(dated):
        for b in dated[i + 1:]:
            if a.year_id != b.year_id or PeriodType.parse(a.period_type) != PeriodType.parse(b.period_type):
                continue
            if a.start_date <= b.end_date and b.start_date <= a.end_date:
                overlaps.append((a, b))
    return overlaps


def current_period(periods, today=None, tz_name=None):
    """Período vigente para `today` (por defecto, la fecha actual en la zona configurada)."""
    if today is None:
        today = datetime.datetime.now(get_tz(tz_name)).date()
    for p in sorted(periods, key=lambda p: (p.sequence, str(p.id))):
        if p.start_date is None or p.end_date is None:
            continue
        if p.start_date <= today <= p.end_date:
            return p
    return None
