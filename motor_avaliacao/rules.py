# motor_avaliacao/rules.py
"""Registro de reglas de evaluación.

Precedencia al resolver la regla de un (curso, serie), de la más específica a la
menos específica:

1. Regla con ese curso y esa serie.
2. Regla del curso sin serie (regla por defecto del curso).
3. Ninguna: se retorna None y la asignatura queda fuera de la agregación.

Reglas inactivas o inválidas nunca participan: se descartan con un WARNING antes de
aplicar la precedencia. Por eso una regla (curso, serie) inválida no deja la serie sin
regla; la resolución sigue al nivel 2 y usa la regla por defecto del curso si existe.
Solo cuando ningún nivel tiene una regla válida el resultado es None.

Si dos reglas empatan en el mismo nivel gana la de menor id, para que el resultado no
dependa del orden de carga.
"""
import logging

from .models import CANONICAL_PERIODS_PER_YEAR, PeriodType, RecoveryStrategy
from .utils import require_id

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Regla de evaluación inválida (se rechaza al escribirla)."""

    def __init__(self, rule_id, problems):
        self.rule_id = rule_id
        self.problems = list(problems)
        super().__init__(f"Regla {rule_id!r} inválida: {'; '.join(self.problems)}")


def validate_rule(rule) -> list:
    """Lista de problemas de la regla; vacía si es válida."""
    problems = []
    try:
        period_type = PeriodType.parse(rule.period_type)
    except ValueError as e:
        problems.append(str(e))
        period_type = None

    if period_type is not None:
        expected = CANONICAL_PERIODS_PER_YEAR[period_type]
        if rule.periods_per_year != expected:
            problems.append(
                f"periods_per_year={rule.periods_per_year} no corresponde a {period_type.value} (se esperan {expected})"
            )

    if rule.min_approval_grade is None or not 0 <= rule.min_approval_grade <= 10:
        problems.append(f"min_approval_grade={rule.min_approval_grade} fuera de rango [0, 10]")
    if rule.min_attendance_percent is None or not 0 <= rule.min_attendance_percent <= 100:
        problems.append(f"min_attendance_percent={rule.min_attendance_percent} fuera de rango [0, 100]")

    if rule.recovery_strategy is not None:
        try:
            RecoveryStrategy.parse(rule.recovery_strategy)
        except ValueError as e:
            problems.append(str(e))

    if rule.period_weights is not None:
        weights = list(rule.period_weights)
        if len(weights) != rule.periods_per_year:
            problems.append(f"period_weights tiene {len(weights)} pesos para {rule.periods_per_year} períodos")
        if any(w is None or w <= 0 for w in weights):
            problems.append("period_weights debe contener solo pesos positivos")

    return problems


def is_valid_rule(rule) -> bool:
    return not validate_rule(rule)


def ensure_valid_rule(rule):
    problems = validate_rule(rule)
    if problems:
        raise ConfigurationError(rule.id, problems)
    return rule


def _usable(rule):
    if not rule.active:
        return False
    problems = validate_rule(rule)
    if problems:
        logger.warning("Regla %s ignorada por configuración inválida: %s", rule.id, '; '.join(problems))
        return False
    return True


def _lowest_id(candidates):
    return sorted(candidates, key=lambda r: str(r.id))[0] if candidates else None


def resolve_rule(rules, course_id, grade_id=None):
    """Regla aplicable para (curso, serie) o None. Ver precedencia en el docstring del módulo."""
    require_id(course_id, 'course_id')
    usable = [r for r in rules if str(r.course_id) == str(course_id) and _usable(r)]

    if grade_id is not None:
        exact = [r for r in usable if r.education_grade_id is not None and str(r.education_grade_id) == str(grade_id)]
        if exact:
            return _lowest_id(exact)

    course_default = [r for r in usable if r.education_grade_id is None]
    if course_default:
        return _lowest_id(course_default)

    logger.debug("Sin regla para curso=%s serie=%s", course_id, grade_id)
    return None


class RuleRegistry:
    """Colección de reglas con validación al escribir y resolución por precedencia."""

    def __init__(self, rules=()):
        self._rules = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule):
        ensure_valid_rule(rule)
        self._rules[str(rule.id)] = rule
        return rule

    @property
    def rules(self):
        return tuple(self._rules.values())

    def resolve(self, course_id, grade_id=None):
        return resolve_rule(self._rules.values(), course_id, grade_id)
