# motor_avaliacao/assessments.py
"""Agregación de evaluaciones por período.

Dos modos que comparten las mismas primitivas:

- Estimate: promedio aritmético simple de las notas regulares del período. Rápido,
  pensado para paneles generales.
- Authoritative: promedio ponderado por tipo de evaluación, renormalizado sobre los
  tipos presentes, con sustitución por recuperación según la regla.

La recuperación del período solo se aplica con promedio bajo la nota mínima, así que
con Replace o Average la nota no es monótona: subir un promedio de 5.9 a 6.0 con una
recuperación de 9.0 baja el período de 7.45 a 6.0 (Average). Sin recuperación sí lo es.

Un período sin evaluaciones queda con `contributing_assessment_count == 0` y sin
promedio; nunca se trata como nota 0.
"""
import logging
from collections import defaultdict

from .models import (
    CATEGORY_RECOVERY, EvaluationMode, RecoveryStrategy, SubjectPeriodGrade,
)
from .utils import normalize_text

logger = logging.getLogger(__name__)

_RECOVERY_CATEGORIES = {CATEGORY_RECOVERY, 'recuperacion', 'recuperation', 'recovery'}


def resolve_strategy(rule, config):
    if rule is not None and rule.recovery_strategy is not None:
        return RecoveryStrategy.parse(rule.recovery_strategy)
    return RecoveryStrategy.parse(config.default_recovery_strategy)


def normalize_score(value, assessment_type=None, scale=10.0):
    """Lleva la nota cruda a la escala de notas usando el puntaje máximo del tipo."""
    value = float(value)
    if assessment_type is None or not assessment_type.max_score:
        return value
    max_score = float(assessment_type.max_score)
    clamped = max(0.0, min(value, max_score))
    return clamped / max_score * float(scale)


def is_recovery_assessment(assessment, types_by_id=None):
    if normalize_text(assessment.category) in _RECOVERY_CATEGORIES:
        return True
    a_type = (types_by_id or {}).get(str(assessment.assessment_type_id))
    return bool(a_type is not None and a_type.is_recovery)


def apply_recovery(original, recovery, strategy):
    strategy = RecoveryStrategy.parse(strategy)
    if strategy == RecoveryStrategy.REPLACE:
        return float(recovery)
    if strategy == RecoveryStrategy.AVERAGE:
        return (float(original) + float(recovery)) / 2.0
    return max(float(original), float(recovery))


def _mean(values):
    values = list(values)
    return sum(values) / len(values) if values else None


def _for_period(assessments, student_id, subject_id, period_id):
    return [
        a for a in assessments
        if str(a.period_id) == str(period_id)
        and str(a.student_id) == str(student_id)
        and str(a.subject_id) == str(subject_id)
    ]


def estimate_period_grade(assessments, student_id, subject_id, period_id, assessment_type_id=None,
                          types_by_id=None):
    """Promedio simple de notas crudas regulares. `assessment_type_id` restringe a un tipo.

    Una nota es de recuperación por su categoría o por su tipo, igual que en el modo
    Authoritative.
    """
    period_assessments = _for_period(assessments, student_id, subject_id, period_id)
    if assessment_type_id is not None:
        values = [float(a.raw_value) for a in period_assessments
                  if str(a.assessment_type_id) == str(assessment_type_id)]
    else:
        values = [float(a.raw_value) for a in period_assessments if not is_recovery_assessment(a, types_by_id)]
    avg = _mean(values)
    return SubjectPeriodGrade(
        student_id=student_id,
        subject_id=subject_id,
        period_id=period_id,
        weighted_average=avg,
        contributing_assessment_count=len(values),
        regular_average=avg,
    )


def authoritative_period_grade(assessments, types_by_id, rule, config, student_id, subject_id, period_id):
    period_assessments = _for_period(assessments, student_id, subject_id, period_id)
    allow_recovery = bool(rule is not None and rule.allow_recovery)
    strategy = resolve_strategy(rule, config)
    scale = config.grade_scale_max

    regular = [a for a in period_assessments if not is_recovery_assessment(a, types_by_id)]
    recoveries = [a for a in period_assessments if is_recovery_assessment(a, types_by_id)]

    def _score(a):
        return normalize_score(a.raw_value, types_by_id.get(str(a.assessment_type_id)), scale)

    # Recuperaciones individuales: vinculadas a una evaluación regular concreta
    linked = {}
    for rec in recoveries:
        if rec.related_assessment_id is not None:
            key = str(rec.related_assessment_id)
            linked[key] = max(linked.get(key, float('-inf')), _score(rec))
    unlinked = [_score(rec) for rec in recoveries if rec.related_assessment_id is None]

    by_type = defaultdict(list)
    for a in regular:
        a_type = types_by_id.get(str(a.assessment_type_id))
        if a_type is not None and a_type.exclude_from_average:
            logger.debug("Nota %s ignorada: el tipo %s no cuenta en el promedio", a.id, a_type.name)
            continue
        value = _score(a)
        if allow_recovery and str(a.id) in linked:
            recovered = apply_recovery(value, linked[str(a.id)], strategy)
            logger.debug("Recuperación individual de %s: %.2f -> %.2f [%s]", a.id, value, recovered, strategy.value)
            value = recovered
        by_type[str(a.assessment_type_id)].append(value)

    count = sum(len(v) for v in by_type.values())
    if count == 0:
        return SubjectPeriodGrade(
            student_id=student_id, subject_id=subject_id, period_id=period_id,
            weighted_average=None, contributing_assessment_count=0,
            recovery_grade=max(unlinked) if unlinked else None,
        )

    weighted_sum = 0.0
    total_weight = 0.0
    for type_id, values in by_type.items():
        a_type = types_by_id.get(type_id)
        weight = float(a_type.weight) if a_type is not None and a_type.weight else 1.0
        weighted_sum += _mean(values) * weight
        total_weight += weight
    regular_average = weighted_sum / total_weight

    final = regular_average
    recovery_grade = max(unlinked) if unlinked else None
    recovery_applied = False
    if allow_recovery and recovery_grade is not None and regular_average < rule.min_approval_grade:
        final = apply_recovery(regular_average, recovery_grade, strategy)
        recovery_applied = True
        logger.debug(
            "Recuperación del período %s: promedio %.2f, recuperación %.2f -> %.2f [%s]",
            period_id, regular_average, recovery_grade, final, strategy.value,
        )

    return SubjectPeriodGrade(
        student_id=student_id,
        subject_id=subject_id,
        period_id=period_id,
        weighted_average=final,
        contributing_assessment_count=count,
        regular_average=regular_average,
        recovery_grade=recovery_grade,
        recovery_applied=recovery_applied,
    )


def aggregate_period_grades(assessments, periods, types, rule, config, mode, student_id, subject_id):
    """Una nota por cada período seleccionado, incluidos los que no tienen evaluaciones."""
    mode = EvaluationMode.parse(mode)
    assessments = list(assessments)
    types_by_id = {str(t.id): t for t in (types or [])}
    grades = []
    for period in periods:
        if mode == EvaluationMode.ESTIMATE:
            grade = estimate_period_grade(
                assessments, student_id, subject_id, period.id, types_by_id=types_by_id
            )
        else:
            grade = authoritative_period_grade(
                assessments, types_by_id, rule, config, student_id, subject_id, period.id
            )
        grades.append(grade)
    return grades


def recovery_recorded(assessments, types, period_ids, student_id=None, subject_id=None):
    """¿Existe alguna evaluación de recuperación del alumno en la asignatura, en los períodos dados?

    Con `student_id`/`subject_id` en None no se filtra por ese campo.
    """
    types_by_id = {str(t.id): t for t in (types or [])}
    wanted = {str(p) for p in period_ids}
    return any(
        str(a.period_id) in wanted
        and (student_id is None or str(a.student_id) == str(student_id))
        and (subject_id is None or str(a.subject_id) == str(subject_id))
        and is_recovery_assessment(a, types_by_id)
        for a in assessments
    )
