# motor_avaliacao/aggregation.py
from .settings import EngineConfig
from .utils import round_grade


def aggregate_year(period_grades, rule=None, config=None):
    """Combina las notas de período en la nota final del año.

    Solo cuentan los períodos con evaluaciones; los vacíos salen del denominador en vez
    de sumar 0. Si la regla trae `period_weights` (uno por período, en orden de
    secuencia) se usa promedio ponderado renormalizado sobre los períodos con datos.

    Retorna (final_grade, raw_final_grade, contributing_periods_count); sin períodos
    con datos, ambas notas son None.
    """
    config = config or EngineConfig()
    period_grades = list(period_grades)
    weights = list(rule.period_weights) if rule is not None and rule.period_weights else None

    weighted_sum = 0.0
    total_weight = 0.0
    contributing = 0
    for idx, grade in enumerate(period_grades):
        if not grade.has_data:
            continue
        weight = 1.0
        if weights is not None and idx < len(weights):
            weight = float(weights[idx])
        weighted_sum += grade.weighted_average * weight
        total_weight += weight
        contributing += 1

    if contributing == 0 or total_weight == 0:
        return None, None, 0

    raw = weighted_sum / total_weight
    return round_grade(raw, config.grade_decimals), raw, contributing
