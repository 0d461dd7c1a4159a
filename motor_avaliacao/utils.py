import unicodedata
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from flask import current_app, has_app_context
from pytz import timezone

DEFAULT_TIMEZONE_NAME = 'America/Sao_Paulo'


def normalize_text(s: str) -> str:
    """Normalize text for robust matching: to lowercase, strip accents, collapse whitespace.

    - Converts to string
    - Unicode NFKD decomposition and removes diacritics
    - Lowercases
    - Collapses multiple spaces to single space
    """
    if s is None:
        return ""
    s = str(s)
    nfkd = unicodedata.normalize("NFKD", s)
    no_accents = "".join(c for c in nfkd if not unicodedata.combining(c))
    return " ".join(no_accents.lower().strip().split())


def get_tz(tz_name=None):
    """Devuelve la zona horaria configurada.

    - Usa `tz_name` si se entrega.
    - Si no, lee TIMEZONE_NAME desde la config de Flask cuando hay contexto activo.
    - Sin contexto, usa 'America/Sao_Paulo'.
    """
    if tz_name is None:
        if has_app_context():
            tz_name = current_app.config.get('TIMEZONE_NAME', DEFAULT_TIMEZONE_NAME)
        else:
            tz_name = DEFAULT_TIMEZONE_NAME
    return timezone(tz_name)


def round_grade(value, decimals=2):
    """Redondea una nota con ROUND_HALF_UP (6.665 -> 6.67), no con el redondeo bancario de round().

    Retorna None si el valor no es numérico.
    """
    if value is None:
        return None
    try:
        quantum = Decimal(1).scaleb(-int(decimals))
        d = Decimal(str(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return float(d)


def require_id(value, name):
    """Los identificadores nulos son errores de programación, no datos insuficientes."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"'{name}' es obligatorio")
    return value
