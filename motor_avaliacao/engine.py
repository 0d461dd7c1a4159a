# motor_avaliacao/engine.py
"""Motor de evaluación: regla -> períodos -> notas/asistencia -> nota anual -> estado -> riesgo.

Todo se recalcula en cada llamada a partir de los datos crudos entregados por la
fuente; no hay caché ni estado compartido mutable, por lo que una edición histórica
de notas se refleja de inmediato y dos llamadas con los mismos datos devuelven lo
mismo. Los lotes se reparten en hilos sin locks.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, wait

from .aggregation import aggregate_year
from .approval import resolve_status
from .assessments import aggregate_period_grades, recovery_recorded
from .attendance import compute_attendance, filter_attendance
from .models import (
    BatchResult, EnrollmentReport, EvaluationMode, FinalSubjectResult,
    REASON_NO_ASSESSMENTS, REASON_NO_ATTENDANCE, REASON_NO_PERIODS, REASON_NO_RULE,
    SubjectStatus,
)
from .periods import select_periods
from .risk import classify_enrollment, summarize_cohort
from .rules import resolve_rule
from .settings import EngineConfig
from .utils import require_id

logger = logging.getLogger(__name__)


def evaluate_subject(student_id, subject_id, year_id, rule, year_periods, assessments,
                     attendance_records, assessment_types, mode=EvaluationMode.AUTHORITATIVE,
                     config=None) -> FinalSubjectResult:
    """Evaluación pura de un (alumno, asignatura, año) con todas las entradas explícitas."""
    config = config or EngineConfig()
    mode = EvaluationMode.parse(mode)
    assessments = list(assessments)
    attendance_records = list(attendance_records)

    if rule is None:
        attendance = compute_attendance(
            filter_attendance(attendance_records, subject_id=subject_id, student_id=student_id), None, config
        )
        return FinalSubjectResult(
            student_id=student_id, subject_id=subject_id, year_id=year_id, mode=mode,
            final_grade=None, contributing_periods_count=0, attendance=attendance,
            status=SubjectStatus.CURSANDO, insufficient_data=True, reason=REASON_NO_RULE,
            message='Sem regra de avaliação aplicável',
        )

    periods = select_periods(year_periods, rule)
    period_ids = [p.id for p in periods]
    attendance = compute_attendance(
        filter_attendance(
            attendance_records, subject_id=subject_id, period_ids=period_ids if periods else None,
            student_id=student_id,
        ),
        rule, config,
    )

    period_grades = aggregate_period_grades(
        assessments, periods, assessment_types, rule, config, mode, student_id, subject_id
    )
    final_grade, raw_final_grade, contributing = aggregate_year(period_grades, rule, config)
    recorded = recovery_recorded(assessments, assessment_types, period_ids, student_id, subject_id)
    decision = resolve_status(final_grade, contributing, attendance, rule, recorded, config)

    reason = None
    if not periods:
        reason = REASON_NO_PERIODS
    elif contributing == 0:
        reason = REASON_NO_ASSESSMENTS
    elif attendance.insufficient_data:
        reason = REASON_NO_ATTENDANCE

    logger.debug(
        "Evaluación %s/%s/%s [%s]: nota=%s períodos=%d frecuencia=%.2f%% -> %s",
        student_id, subject_id, year_id, mode.value, final_grade, contributing,
        attendance.percentage, decision.status.value,
    )
    return FinalSubjectResult(
        student_id=student_id,
        subject_id=subject_id,
        year_id=year_id,
        mode=mode,
        final_grade=final_grade,
        raw_final_grade=raw_final_grade,
        contributing_periods_count=contributing,
        attendance=attendance,
        status=decision.status,
        insufficient_data=reason is not None,
        reason=reason,
        rule_id=rule.id,
        period_grades=tuple(period_grades),
        grade_approved=decision.grade_approved,
        attendance_approved=decision.attendance_approved,
        message=decision.message,
    )


def _fan_out(fn, items, max_workers, timeout):
    """Aplica fn a cada item en hilos. Devuelve (resultados en orden, errores, timed_out)."""
    results = [None] * len(items)
    errors = []
    if not items:
        return results, errors, False
    pool = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = {pool.submit(fn, item): idx for idx, item in enumerate(items)}
        done, pending = wait(futures, timeout=timeout)
    finally:
        # Sin esperar a los pendientes: el lote devuelve lo calculado hasta el timeout
        pool.shutdown(wait=False, cancel_futures=True)
    for fut in done:
        idx = futures[fut]
        try:
            results[idx] = fut.result()
        except Exception as e:
            logger.exception("Falló la evaluación de %r: %s", items[idx], e)
            errors.append({'item': items[idx], 'error': str(e)})
    if pending:
        logger.warning("Lote interrumpido por tiempo: %d de %d sin calcular", len(pending), len(items))
    return results, errors, bool(pending)


class EvaluationEngine:
    """Fachada del motor sobre una fuente de datos de solo lectura."""

    def __init__(self, source, config=None):
        self.source = source
        self.config = config or EngineConfig()

    def _config(self, config):
        return config or self.config

    def resolve_rule(self, course_id, grade_id=None):
        return resolve_rule(self.source.get_evaluation_rules(), course_id, grade_id)

    def _rule_for(self, enrollment):
        if enrollment is None:
            return None
        rule = self.resolve_rule(enrollment.course_id, enrollment.education_grade_id)
        if rule is None:
            logger.warning(
                "Curso %s / serie %s sin regla de avaliação: sus asignaturas quedan fuera de los agregados",
                enrollment.course_id, enrollment.education_grade_id,
            )
        return rule

    def evaluate(self, student_id, subject_id, academic_year_id, mode=EvaluationMode.AUTHORITATIVE,
                 config=None) -> FinalSubjectResult:
        require_id(student_id, 'student_id')
        require_id(subject_id, 'subject_id')
        require_id(academic_year_id, 'academic_year_id')
        mode = EvaluationMode.parse(mode)
        config = self._config(config)

        enrollment = self.source.get_enrollment(student_id, academic_year_id)
        if enrollment is None:
            logger.warning("Alumno %s sin matrícula en el año %s", student_id, academic_year_id)
        rule = self._rule_for(enrollment)
        return evaluate_subject(
            student_id, subject_id, academic_year_id, rule,
            self.source.get_periods(academic_year_id),
            self.source.get_assessments(student_id, subject_id, academic_year_id),
            self.source.get_attendance(student_id, subject_id),
            self.source.get_assessment_types(),
            mode, config,
        )

    def evaluate_enrollment(self, student_id, academic_year_id, mode=EvaluationMode.AUTHORITATIVE,
                            config=None):
        """Todas las asignaturas de la matrícula más la frecuencia global y las banderas de riesgo.

        Retorna None si el alumno no tiene matrícula en ese año.
        """
        require_id(student_id, 'student_id')
        require_id(academic_year_id, 'academic_year_id')
        mode = EvaluationMode.parse(mode)
        config = self._config(config)

        enrollment = self.source.get_enrollment(student_id, academic_year_id)
        if enrollment is None:
            return None
        rule = self._rule_for(enrollment)
        year_periods = self.source.get_periods(academic_year_id)
        types = self.source.get_assessment_types()
        all_attendance = self.source.get_attendance(student_id)

        results = tuple(
            evaluate_subject(
                student_id, subject_id, academic_year_id, rule, year_periods,
                self.source.get_assessments(student_id, subject_id, academic_year_id),
                all_attendance, types, mode, config,
            )
            for subject_id in enrollment.subject_ids
        )

        selected = select_periods(year_periods, rule)
        attendance = compute_attendance(
            filter_attendance(all_attendance, period_ids=[p.id for p in selected] if selected else None),
            rule, config,
        )
        risk = classify_enrollment(results, attendance, config)
        return EnrollmentReport(enrollment=enrollment, results=results, attendance=attendance, risk=risk)

    def evaluate_batch(self, pairs, academic_year_id, mode=EvaluationMode.AUTHORITATIVE,
                       max_workers=None, timeout=None, config=None) -> BatchResult:
        """Recalcula muchos (alumno, asignatura) en paralelo. Un par que falla no aborta el lote."""
        config = self._config(config)
        pairs = [tuple(p) for p in pairs]
        if len(pairs) > config.batch_max_size:
            raise ValueError(f"Lote de {len(pairs)} pares supera el máximo de {config.batch_max_size}")
        mode = EvaluationMode.parse(mode)

        def _one(pair):
            student_id, subject_id = pair
            return self.evaluate(student_id, subject_id, academic_year_id, mode, config)

        results, errors, timed_out = _fan_out(
            _one, pairs,
            max_workers or config.batch_max_workers,
            timeout if timeout is not None else config.batch_timeout_sec,
        )
        logger.info("Lote del año %s: %d pares, %d errores", academic_year_id, len(pairs), len(errors))
        return BatchResult(results=results, errors=errors, timed_out=timed_out)

    def evaluate_cohort(self, academic_year_id, mode=EvaluationMode.AUTHORITATIVE, config=None):
        config = self._config(config)
        enrollments = self.source.list_enrollments(academic_year_id)
        if len(enrollments) > config.batch_max_size:
            raise ValueError(f"Cohorte de {len(enrollments)} matrículas supera el máximo de {config.batch_max_size}")
        reports, errors, _ = _fan_out(
            lambda e: self.evaluate_enrollment(e.student_id, academic_year_id, mode, config),
            enrollments, config.batch_max_workers, config.batch_timeout_sec,
        )
        return [r for r in reports if r is not None], errors

    def cohort_summary(self, academic_year_id, mode=EvaluationMode.AUTHORITATIVE, config=None):
        config = self._config(config)
        reports, errors = self.evaluate_cohort(academic_year_id, mode, config)
        summary = summarize_cohort(reports, config)
        summary['year_id'] = academic_year_id
        summary['mode'] = EvaluationMode.parse(mode).value
        summary['errors'] = [{'student_id': err['item'].student_id, 'error': err['error']} for err in errors]
        return summary
