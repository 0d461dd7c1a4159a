import pytest

from factories import lessons, make_rule
from motor_avaliacao.aggregation import aggregate_year
from motor_avaliacao.approval import recovery_pending, resolve_status
from motor_avaliacao.attendance import compute_attendance
from motor_avaliacao.models import SubjectPeriodGrade, SubjectStatus
from motor_avaliacao.settings import EngineConfig
from motor_avaliacao.utils import round_grade


def _periods(*values):
    return [
        SubjectPeriodGrade('s1', 'MAT', f'b{i}', v, 0 if v is None else 1)
        for i, v in enumerate(values, start=1)
    ]


def test_year_average_skips_empty_periods():
    final, raw, count = aggregate_year(_periods(7.0, 5.0, 8.0, None))
    assert final == 6.67
    assert raw == pytest.approx(20.0 / 3)
    assert count == 3


def test_year_without_data():
    assert aggregate_year(_periods(None, None)) == (None, None, 0)
    assert aggregate_year([]) == (None, None, 0)


def test_period_weights_applied_in_sequence_order():
    rule = make_rule(period_weights=(2, 3, 2, 3))
    final, _, count = aggregate_year(_periods(7.0, 5.0, 8.0, None), rule)
    # (14 + 15 + 16) / 7
    assert final == 6.43
    assert count == 3


def test_round_half_up():
    assert round_grade(6.665) == 6.67
    assert round_grade(2.675) == 2.68
    assert round_grade(6.5, 0) == 7.0
    assert round_grade(None) is None


def _attendance(presentes, faltas=0):
    return compute_attendance(lessons(presentes=presentes, faltas=faltas), make_rule())


def test_approved_on_both_boundaries():
    decision = resolve_status(6.0, 3, _attendance(3, 1), make_rule())
    assert decision.status == SubjectStatus.APROVADO
    assert decision.grade_approved and decision.attendance_approved


def test_failed_by_grade():
    decision = resolve_status(5.99, 3, _attendance(10), make_rule())
    assert decision.status == SubjectStatus.REPROVADO
    assert decision.grade_approved is False
    assert 'nota' in decision.message


def test_failed_by_attendance_even_with_good_grade():
    decision = resolve_status(9.0, 3, _attendance(7, 3), make_rule())
    assert decision.status == SubjectStatus.REPROVADO
    assert decision.attendance_approved is False
    assert 'frequência' in decision.message


def test_failed_by_both():
    decision = resolve_status(3.0, 3, _attendance(5, 5), make_rule())
    assert decision.status == SubjectStatus.REPROVADO
    assert 'nota' in decision.message and 'frequência' in decision.message


def test_no_periods_or_attendance_is_cursando():
    assert resolve_status(None, 0, _attendance(10), make_rule()).status == SubjectStatus.CURSANDO
    assert resolve_status(8.0, 2, compute_attendance([]), make_rule()).status == SubjectStatus.CURSANDO
    assert resolve_status(8.0, 2, _attendance(10), None).status == SubjectStatus.CURSANDO


def test_em_recuperacao_inside_recoverable_band():
    rule = make_rule(allow_recovery=True)
    decision = resolve_status(5.0, 4, _attendance(10), rule, recovery_recorded=False)
    assert decision.status == SubjectStatus.EM_RECUPERACAO
    assert not decision.is_passing


def test_below_recovery_floor_is_reprovado():
    rule = make_rule(allow_recovery=True)
    assert resolve_status(3.9, 4, _attendance(10), rule).status == SubjectStatus.REPROVADO
    lowered = EngineConfig(min_recovery_grade=3.0)
    assert resolve_status(3.9, 4, _attendance(10), rule, config=lowered).status == SubjectStatus.EM_RECUPERACAO


def test_recovery_already_recorded_is_reprovado():
    rule = make_rule(allow_recovery=True)
    decision = resolve_status(5.0, 4, _attendance(10), rule, recovery_recorded=True)
    assert decision.status == SubjectStatus.REPROVADO


def test_recovery_not_pending_when_attendance_fails():
    rule = make_rule(allow_recovery=True)
    assert not recovery_pending(5.0, False, rule, False, EngineConfig())
    assert resolve_status(5.0, 4, _attendance(5, 5), rule).status == SubjectStatus.REPROVADO


def test_rule_without_recovery_never_em_recuperacao():
    assert resolve_status(5.0, 4, _attendance(10), make_rule()).status == SubjectStatus.REPROVADO
