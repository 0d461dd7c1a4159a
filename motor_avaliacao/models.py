# motor_avaliacao/models.py
"""Tipos del motor de evaluación.

Entidades de configuración (regla, tipo de evaluación, período), registros crudos
(evaluaciones y asistencia, propiedad de la capa de persistencia) y resultados
derivados. Los resultados derivados se recalculan en cada llamada y nunca se
guardan como fuente de verdad.
"""
import datetime
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Optional, Tuple

from .utils import normalize_text


class PeriodType(str, Enum):
    BIMESTRE = 'Bimestre'
    TRIMESTRE = 'Trimestre'
    SEMESTRE = 'Semestre'
    ANUAL = 'Anual'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = normalize_text(value)
        for member in cls:
            if normalize_text(member.value) == key:
                return member
        raise ValueError(f"Tipo de período desconocido: {value!r}")


CANONICAL_PERIODS_PER_YEAR = {
    PeriodType.BIMESTRE: 4,
    PeriodType.TRIMESTRE: 3,
    PeriodType.SEMESTRE: 2,
    PeriodType.ANUAL: 1,
}


class RecoveryStrategy(str, Enum):
    REPLACE = 'Replace'
    AVERAGE = 'Average'
    MAX = 'Max'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = normalize_text(value).replace('_', ' ')
        aliases = {
            'replace': cls.REPLACE, 'always replace': cls.REPLACE, 'substituir': cls.REPLACE,
            'average': cls.AVERAGE, 'media': cls.AVERAGE,
            'max': cls.MAX, 'replace if higher': cls.MAX, 'maior nota': cls.MAX,
        }
        if key in aliases:
            return aliases[key]
        raise ValueError(f"Estrategia de recuperación desconocida: {value!r}")


class AttendanceStatus(str, Enum):
    PRESENTE = 'Presente'
    FALTA = 'Falta'
    FALTA_JUSTIFICADA = 'Falta_Justificada'

    @classmethod
    def parse(cls, value):
        """Acepta variantes de escritura: 'falta justificada', 'FALTA_JUSTIFICADA', 'Presente '."""
        if isinstance(value, cls):
            return value
        key = normalize_text(value).replace('_', ' ')
        for member in cls:
            if normalize_text(member.value).replace('_', ' ') == key:
                return member
        raise ValueError(f"Estado de asistencia desconocido: {value!r}")


class SubjectStatus(str, Enum):
    CURSANDO = 'Cursando'
    APROVADO = 'Aprovado'
    REPROVADO = 'Reprovado'
    EM_RECUPERACAO = 'EmRecuperação'


class EvaluationMode(str, Enum):
    ESTIMATE = 'Estimate'
    AUTHORITATIVE = 'Authoritative'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = normalize_text(value)
        for member in cls:
            if member.value.lower() == key:
                return member
        raise ValueError(f"Modo de evaluación desconocido: {value!r}")


# Categorías de evaluación cruda
CATEGORY_REGULAR = 'regular'
CATEGORY_RECOVERY = 'recuperacao'

# Motivos de datos insuficientes (no son errores)
REASON_NO_RULE = 'no_rule'
REASON_NO_PERIODS = 'no_periods'
REASON_NO_ASSESSMENTS = 'no_assessments'
REASON_NO_ATTENDANCE = 'no_attendance'


# --- Configuración (solo lectura para el motor) ---

@dataclass(frozen=True)
class EvaluationRule:
    id: str
    min_approval_grade: float
    min_attendance_percent: float
    period_type: PeriodType
    periods_per_year: int
    course_id: Optional[str] = None
    education_grade_id: Optional[str] = None
    name: str = ''
    allow_recovery: bool = False
    recovery_strategy: Optional[RecoveryStrategy] = None
    active: bool = True
    period_weights: Optional[Tuple[float, ...]] = None


@dataclass(frozen=True)
class AssessmentType:
    id: str
    name: str
    weight: float = 1.0
    max_score: float = 10.0
    is_recovery: bool = False
    exclude_from_average: bool = False


@dataclass(frozen=True)
class AcademicPeriod:
    id: str
    year_id: str
    period_type: PeriodType
    sequence: int
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    name: str = ''


# --- Registros crudos ---

@dataclass(frozen=True)
class Assessment:
    id: str
    student_id: str
    subject_id: str
    period_id: str
    assessment_type_id: str
    raw_value: float
    category: str = CATEGORY_REGULAR
    related_assessment_id: Optional[str] = None


@dataclass(frozen=True)
class AttendanceRecord:
    student_id: str
    lesson_id: str
    status: AttendanceStatus
    date: Optional[datetime.date] = None
    subject_id: Optional[str] = None
    period_id: Optional[str] = None


@dataclass(frozen=True)
class Enrollment:
    student_id: str
    year_id: str
    course_id: str
    education_grade_id: Optional[str] = None
    subject_ids: Tuple[str, ...] = ()
    student_name: str = ''
    grade_name: str = ''


# --- Resultados derivados ---

@dataclass(frozen=True)
class SubjectPeriodGrade:
    student_id: str
    subject_id: str
    period_id: str
    weighted_average: Optional[float]
    contributing_assessment_count: int
    regular_average: Optional[float] = None
    recovery_grade: Optional[float] = None
    recovery_applied: bool = False

    @property
    def has_data(self):
        return self.contributing_assessment_count > 0 and self.weighted_average is not None


@dataclass(frozen=True)
class AttendanceSummary:
    total: int
    presences: int
    absences: int
    justified_absences: int
    percentage: float
    insufficient_data: bool
    meets_minimum: Optional[bool]
    threshold_used: float

    @property
    def absence_percentage(self):
        if self.insufficient_data:
            return None
        return round(100.0 - self.percentage, 2)

    def to_dict(self):
        data = asdict(self)
        data['absence_percentage'] = self.absence_percentage
        return data


@dataclass(frozen=True)
class FinalSubjectResult:
    student_id: str
    subject_id: str
    year_id: str
    mode: EvaluationMode
    final_grade: Optional[float]
    contributing_periods_count: int
    attendance: AttendanceSummary
    status: SubjectStatus
    insufficient_data: bool = False
    reason: Optional[str] = None
    rule_id: Optional[str] = None
    raw_final_grade: Optional[float] = None
    period_grades: Tuple[SubjectPeriodGrade, ...] = ()
    grade_approved: Optional[bool] = None
    attendance_approved: Optional[bool] = None
    message: str = ''

    @property
    def attendance_percentage(self):
        return self.attendance.percentage

    @property
    def is_passing(self):
        return self.status == SubjectStatus.APROVADO

    @property
    def is_computable(self):
        """Tiene nota y asistencia; solo estos entran en promedios agregados."""
        return not self.insufficient_data and self.final_grade is not None

    @property
    def excluded(self):
        """Sin regla aplicable: la asignatura queda fuera de toda agregación."""
        return self.reason == REASON_NO_RULE

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'subject_id': self.subject_id,
            'year_id': self.year_id,
            'mode': self.mode.value,
            'final_grade': self.final_grade,
            'raw_final_grade': self.raw_final_grade,
            'contributing_periods_count': self.contributing_periods_count,
            'attendance_percentage': self.attendance_percentage,
            'attendance': self.attendance.to_dict(),
            'status': self.status.value,
            'is_passing': self.is_passing,
            'insufficient_data': self.insufficient_data,
            'reason': self.reason,
            'rule_id': self.rule_id,
            'grade_approved': self.grade_approved,
            'attendance_approved': self.attendance_approved,
            'message': self.message,
            'period_grades': [asdict(p) for p in self.period_grades],
        }


@dataclass(frozen=True)
class RiskFlags:
    at_risk: bool
    high_absenteeism: bool
    high_performer: bool
    failing_subjects_count: int
    computable_subjects_count: int
    average_grade: Optional[float]
    absence_percentage: Optional[float]

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class EnrollmentReport:
    enrollment: Enrollment
    results: Tuple[FinalSubjectResult, ...]
    attendance: AttendanceSummary
    risk: RiskFlags

    def to_dict(self):
        return {
            'student_id': self.enrollment.student_id,
            'student_name': self.enrollment.student_name,
            'year_id': self.enrollment.year_id,
            'course_id': self.enrollment.course_id,
            'education_grade_id': self.enrollment.education_grade_id,
            'grade_name': self.enrollment.grade_name,
            'attendance': self.attendance.to_dict(),
            'risk': self.risk.to_dict(),
            'results': [r.to_dict() for r in self.results],
        }


@dataclass
class BatchResult:
    """Resultado de un recálculo en lote. `results` conserva el orden de entrada;
    los pares que fallaron quedan en None y se listan en `errors`."""
    results: List[Optional[FinalSubjectResult]] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)
    timed_out: bool = False
