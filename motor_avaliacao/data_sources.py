# motor_avaliacao/data_sources.py
"""Interfaz de lectura que el motor consume y una implementación sobre pandas.

La persistencia real (base de datos de la red municipal) vive fuera de este paquete;
aquí solo se define qué le pide el motor y cómo se traducen filas a los tipos del
motor. DataFrameSource sirve para la API de demostración, el generador de datos y
las pruebas.
"""
import abc
import logging

import pandas as pd

from .attendance import filter_attendance
from .models import (
    AcademicPeriod, Assessment, AssessmentType, AttendanceRecord, AttendanceStatus,
    CATEGORY_REGULAR, Enrollment, EvaluationRule, PeriodType, RecoveryStrategy,
)

logger = logging.getLogger(__name__)


class DataSource(abc.ABC):
    """Datos crudos de solo lectura, entregados en cada llamada."""

    @abc.abstractmethod
    def get_assessments(self, student_id, subject_id, year_id, period_id=None):
        ...

    @abc.abstractmethod
    def get_attendance(self, student_id, subject_id=None, period_id=None):
        ...

    @abc.abstractmethod
    def get_periods(self, year_id):
        ...

    @abc.abstractmethod
    def get_assessment_types(self, scope=None):
        ...

    @abc.abstractmethod
    def get_evaluation_rules(self):
        ...

    @abc.abstractmethod
    def get_enrollment(self, student_id, year_id):
        ...

    @abc.abstractmethod
    def list_enrollments(self, year_id):
        ...


# --- Conversión de filas ---

def _clean(v):
    if v is None:
        return None
    if isinstance(v, (list, tuple)):
        return v
    try:
        if pd.isna(v):
            return None
    except (TypeError, ValueError):
        pass
    return v


def _as_id(v):
    v = _clean(v)
    if v is None:
        return None
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    return str(v)


def _as_bool(v, default=False):
    v = _clean(v)
    if v is None:
        return default
    if isinstance(v, str):
        return v.strip().lower() in ('1', 'true', 'sim', 'si', 'yes', 't')
    return bool(v)


def _as_date(v):
    v = _clean(v)
    if v is None:
        return None
    return pd.Timestamp(v).date()


def _as_list(v, conv=str):
    v = _clean(v)
    if v is None:
        return ()
    if isinstance(v, str):
        v = [part.strip() for part in v.split(',') if part.strip()]
    return tuple(conv(x) for x in v)


def _as_number(v, conv=float):
    v = _clean(v)
    if v is None:
        return None
    try:
        return conv(float(v)) if conv is int else conv(v)
    except (TypeError, ValueError):
        return None


def _parsed_or_raw(parse, v):
    v = _clean(v)
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    try:
        return parse(v)
    except ValueError:
        return v


def rule_from_row(row) -> EvaluationRule:
    """Fila -> EvaluationRule sin validar.

    Valores que no se pueden interpretar quedan crudos (o None) para que validate_rule
    marque la regla como inválida al resolver, en vez de abortar la carga de todas.
    """
    weights = _as_list(row.get('period_weights'), _as_number)
    return EvaluationRule(
        id=_as_id(row['id']),
        name=_clean(row.get('name')) or '',
        course_id=_as_id(row.get('course_id')),
        education_grade_id=_as_id(row.get('education_grade_id')),
        min_approval_grade=_as_number(row.get('min_approval_grade')),
        min_attendance_percent=_as_number(row.get('min_attendance_percent')),
        period_type=_parsed_or_raw(PeriodType.parse, row.get('period_type')),
        periods_per_year=_as_number(row.get('periods_per_year'), int),
        allow_recovery=_as_bool(row.get('allow_recovery')),
        recovery_strategy=_parsed_or_raw(RecoveryStrategy.parse, row.get('recovery_strategy')),
        active=_as_bool(row.get('active'), default=True),
        period_weights=weights or None,
    )


def assessment_type_from_row(row) -> AssessmentType:
    return AssessmentType(
        id=_as_id(row['id']),
        name=_clean(row.get('name')) or '',
        weight=float(_clean(row.get('weight')) or 1.0),
        max_score=float(_clean(row.get('max_score')) or 10.0),
        is_recovery=_as_bool(row.get('is_recovery')),
        exclude_from_average=_as_bool(row.get('exclude_from_average')),
    )


def period_from_row(row) -> AcademicPeriod:
    return AcademicPeriod(
        id=_as_id(row['id']),
        year_id=_as_id(row['year_id']),
        period_type=PeriodType.parse(row['period_type']),
        sequence=int(row['sequence']),
        start_date=_as_date(row.get('start_date')),
        end_date=_as_date(row.get('end_date')),
        name=_clean(row.get('name')) or '',
    )


def assessment_from_row(row) -> Assessment:
    return Assessment(
        id=_as_id(row['id']),
        student_id=_as_id(row['student_id']),
        subject_id=_as_id(row['subject_id']),
        period_id=_as_id(row['period_id']),
        assessment_type_id=_as_id(row['assessment_type_id']),
        raw_value=float(row['raw_value']),
        category=_clean(row.get('category')) or CATEGORY_REGULAR,
        related_assessment_id=_as_id(row.get('related_assessment_id')),
    )


def attendance_from_row(row) -> AttendanceRecord:
    return AttendanceRecord(
        student_id=_as_id(row['student_id']),
        lesson_id=_as_id(row['lesson_id']),
        status=AttendanceStatus.parse(row['status']),
        date=_as_date(row.get('date')),
        subject_id=_as_id(row.get('subject_id')),
        period_id=_as_id(row.get('period_id')),
    )


def enrollment_from_row(row) -> Enrollment:
    return Enrollment(
        student_id=_as_id(row['student_id']),
        year_id=_as_id(row['year_id']),
        course_id=_as_id(row['course_id']),
        education_grade_id=_as_id(row.get('education_grade_id')),
        subject_ids=_as_list(row.get('subject_ids')),
        student_name=_clean(row.get('student_name')) or '',
        grade_name=_clean(row.get('grade_name')) or '',
    )


def _frame(data):
    if data is None:
        return pd.DataFrame()
    if isinstance(data, pd.DataFrame):
        return data.copy()
    return pd.DataFrame(list(data))


def _id_series(df, col):
    return df[col].map(_as_id)


class DataFrameSource(DataSource):
    """Fuente en memoria sobre DataFrames con columnas en snake_case (nombres de los campos)."""

    def __init__(self, assessments=None, attendance=None, periods=None,
                 assessment_types=None, rules=None, enrollments=None):
        self.assessments = _frame(assessments)
        self.attendance = _frame(attendance)
        self.periods = _frame(periods)
        self.assessment_types = _frame(assessment_types)
        self.rules = _frame(rules)
        self.enrollments = _frame(enrollments)
        # Claves normalizadas a str para filtrar sin depender del dtype de origen
        for df, cols in (
            (self.assessments, ('student_id', 'subject_id', 'period_id')),
            (self.attendance, ('student_id', 'subject_id', 'period_id')),
            (self.periods, ('year_id',)),
            (self.enrollments, ('student_id', 'year_id')),
        ):
            for col in cols:
                if col in df.columns:
                    df[f'_{col}'] = _id_series(df, col)
        logger.debug(
            "DataFrameSource: %d evaluaciones, %d registros de asistencia, %d períodos, %d reglas",
            len(self.assessments), len(self.attendance), len(self.periods), len(self.rules),
        )

    @staticmethod
    def _rows(df):
        return [row for _, row in df.iterrows()]

    def _period_ids(self, year_id):
        if self.periods.empty:
            return set()
        return set(self.periods.loc[self.periods['_year_id'] == str(year_id), 'id'].map(_as_id))

    def get_assessments(self, student_id, subject_id, year_id, period_id=None):
        df = self.assessments
        if df.empty:
            return []
        mask = (df['_student_id'] == str(student_id)) & (df['_subject_id'] == str(subject_id))
        if period_id is not None:
            mask &= df['_period_id'] == str(period_id)
        else:
            mask &= df['_period_id'].isin(self._period_ids(year_id))
        return [assessment_from_row(row) for row in self._rows(df[mask])]

    def get_attendance(self, student_id, subject_id=None, period_id=None):
        df = self.attendance
        if df.empty:
            return []
        records = [attendance_from_row(row) for row in self._rows(df[df['_student_id'] == str(student_id)])]
        return filter_attendance(
            records,
            subject_id=subject_id,
            period_ids=[period_id] if period_id is not None else None,
        )

    def get_periods(self, year_id):
        if self.periods.empty:
            return []
        df = self.periods[self.periods['_year_id'] == str(year_id)]
        return [period_from_row(row) for row in self._rows(df)]

    def get_assessment_types(self, scope=None):
        df = self.assessment_types
        if df.empty:
            return []
        if scope is not None and 'scope' in df.columns:
            df = df[df['scope'].isna() | (df['scope'].map(_as_id) == str(scope))]
        return [assessment_type_from_row(row) for row in self._rows(df)]

    def get_evaluation_rules(self):
        if self.rules.empty:
            return []
        return [rule_from_row(row) for row in self._rows(self.rules)]

    def get_enrollment(self, student_id, year_id):
        df = self.enrollments
        if df.empty:
            return None
        df = df[(df['_student_id'] == str(student_id)) & (df['_year_id'] == str(year_id))]
        if df.empty:
            return None
        return enrollment_from_row(df.iloc[0])

    def list_enrollments(self, year_id):
        df = self.enrollments
        if df.empty:
            return []
        return [enrollment_from_row(row) for row in self._rows(df[df['_year_id'] == str(year_id)])]
