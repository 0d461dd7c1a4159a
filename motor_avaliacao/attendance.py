# motor_avaliacao/attendance.py
import logging

from .models import AttendanceStatus, AttendanceSummary
from .settings import EngineConfig

logger = logging.getLogger(__name__)


def filter_attendance(records, subject_id=None, period_ids=None, student_id=None):
    """Restringe los registros a un alumno, a una asignatura y/o a un conjunto de períodos.

    Registros sin asignatura (chamada diaria) se mantienen al filtrar por asignatura.
    """
    out = []
    wanted_periods = {str(p) for p in period_ids} if period_ids is not None else None
    for r in records:
        if student_id is not None and str(r.student_id) != str(student_id):
            continue
        if subject_id is not None and r.subject_id is not None and str(r.subject_id) != str(subject_id):
            continue
        if wanted_periods is not None and r.period_id is not None and str(r.period_id) not in wanted_periods:
            continue
        out.append(r)
    return out


def compute_attendance(records, rule=None, config=None):
    """Resumen de frecuencia.

    percentage = presencias / total * 100. Las faltas justificadas cuentan como faltas
    y se informan aparte. Sin registros, percentage = 0 y el resumen queda marcado como
    datos insuficientes: meets_minimum es None (ni aprueba ni reprueba).
    """
    config = config or EngineConfig()
    presences = absences = justified = 0
    for r in records:
        status =AttendanceStatus.parse(r.status)
        if status == AttendanceStatus.PRESENTE:
            presences += 1
        else:
            absences += 1
            if status == AttendanceStatus.FALTA_JUSTIFICADA:
                justified += 1
    total = presences + absences

    threshold = float(rule.min_attendance_percent) if rule is not None else float(config.default_min_attendance_percent)

    if total == 0:
        return AttendanceSummary(
            total=0, presences=0, absences=0, justified_absences=0,
            percentage=0.0, insufficient_data=True, meets_minimum=None,
            threshold_used=threshold,
        )

    percentage = round(presences / total * 100.0, 2)
    return AttendanceSummary(
        total=total,
        presences=presences,
        absences=absences,
        justified_absences=justified,
        percentage=percentage,
        insufficient_data=False,
        meets_minimum=percentage >= threshold,
        threshold_used=threshold,
    )
