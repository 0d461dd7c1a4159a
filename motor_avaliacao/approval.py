# motor_avaliacao/approval.py
"""Clasificación de aprobación de un alumno en una asignatura.

No es una máquina de estados persistida: se recalcula con los datos actuales en cada
llamada.

    sin períodos con nota o sin registros de asistencia  -> Cursando
    nota >= mínima y frecuencia >= mínima                -> Aprovado
    regla admite recuperación y la recuperación está pendiente -> EmRecuperação
    en otro caso                                         -> Reprovado

Ambos umbrales son inclusivos.
"""
from dataclasses import dataclass
from typing import Optional

from .models import SubjectStatus
from .settings import EngineConfig


@dataclass(frozen=True)
class ApprovalDecision:
    status: SubjectStatus
    grade_approved: Optional[bool]
    attendance_approved: Optional[bool]
    message: str

    @property
    def is_passing(self):
        return self.status == SubjectStatus.APROVADO


def recovery_pending(final_grade, attendance_ok, rule, recovery_recorded, config):
    """Nota dentro de la banda recuperable, frecuencia suficiente y sin recuperación registrada."""
    if rule is None or not rule.allow_recovery or recovery_recorded or not attendance_ok:
        return False
    return config.min_recovery_grade <= final_grade < rule.min_approval_grade


def resolve_status(final_grade, contributing_periods_count, attendance, rule,
                   recovery_recorded=False, config=None) -> ApprovalDecision:
    config = config or EngineConfig()
    if rule is None or contributing_periods_count == 0 or final_grade is None or attendance.total == 0:
        return ApprovalDecision(SubjectStatus.CURSANDO, None, None, 'Sem dados suficientes')

    grade_ok = final_grade >= rule.min_approval_grade
    attendance_ok = attendance.percentage >= rule.min_attendance_percent

    if grade_ok and attendance_ok:
        return ApprovalDecision(SubjectStatus.APROVADO, True, True, 'Aprovado')

    if recovery_pending(final_grade, attendance_ok, rule, recovery_recorded, config):
        message = f"Em recuperação: nota ({final_grade:.1f} < {rule.min_approval_grade})"
        return ApprovalDecision(SubjectStatus.EM_RECUPERACAO, grade_ok, attendance_ok, message)

    if not grade_ok and not attendance_ok:
        message = (
            f"Reprovado por nota ({final_grade:.1f} < {rule.min_approval_grade}) "
            f"e frequência ({attendance.percentage:.1f}% < {rule.min_attendance_percent}%)"
        )
    elif not grade_ok:
        message = f"Reprovado por nota ({final_grade:.1f} < {rule.min_approval_grade})"
    else:
        message = f"Reprovado por frequência ({attendance.percentage:.1f}% < {rule.min_attendance_percent}%)"
    return ApprovalDecision(SubjectStatus.REPROVADO, grade_ok, attendance_ok, message)
