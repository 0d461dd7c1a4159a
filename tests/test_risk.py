import pytest

from factories import lessons
from motor_avaliacao.attendance import compute_attendance
from motor_avaliacao.models import (
    REASON_NO_ASSESSMENTS, REASON_NO_RULE, Enrollment, EnrollmentReport, EvaluationMode,
    FinalSubjectResult, SubjectStatus,
)
from motor_avaliacao.risk import classify_enrollment, is_failing, is_high_performer_subject, summarize_cohort
from motor_avaliacao.settings import EngineConfig

FULL = compute_attendance(lessons(presentes=10))


def result(subject_id, status, final_grade, reason=None, student_id='s1'):
    return FinalSubjectResult(
        student_id=student_id, subject_id=subject_id, year_id='2025', mode=EvaluationMode.AUTHORITATIVE,
        final_grade=final_grade, contributing_periods_count=0 if final_grade is None else 4,
        attendance=FULL, status=status, insufficient_data=reason is not None, reason=reason,
    )


def test_two_failing_subjects_is_at_risk():
    results = [result('MAT', SubjectStatus.REPROVADO, 4.0), result('POR', SubjectStatus.REPROVADO, 5.0),
               result('CIE', SubjectStatus.APROVADO, 7.0)]
    flags = classify_enrollment(results, FULL)
    assert flags.at_risk
    assert flags.failing_subjects_count == 2


def test_one_failing_subject_is_not_at_risk():
    results = [result('MAT', SubjectStatus.REPROVADO, 4.0), result('POR', SubjectStatus.APROVADO, 7.0)]
    assert not classify_enrollment(results, FULL).at_risk


def test_em_recuperacao_counts_as_failing():
    assert is_failing(result('MAT', SubjectStatus.EM_RECUPERACAO, 5.0))
    results = [result('MAT', SubjectStatus.EM_RECUPERACAO, 5.0), result('POR', SubjectStatus.REPROVADO, 3.0)]
    assert classify_enrollment(results, FULL).at_risk


def test_insufficient_results_are_not_failing():
    results = [result('MAT', SubjectStatus.CURSANDO, None, REASON_NO_ASSESSMENTS),
               result('POR', SubjectStatus.CURSANDO, None, REASON_NO_RULE)]
    flags = classify_enrollment(results, FULL)
    assert not flags.at_risk
    assert flags.computable_subjects_count == 0
    assert flags.average_grade is None
    assert not flags.high_performer


def test_at_risk_threshold_is_configurable():
    results = [result('MAT', SubjectStatus.REPROVADO, 4.0)]
    assert classify_enrollment(results, FULL, EngineConfig(at_risk_threshold=1)).at_risk


def test_high_absenteeism_strictly_above_threshold():
    exactly = compute_attendance(lessons(presentes=8, faltas=2))
    above = compute_attendance(lessons(presentes=7, faltas=3))
    results = [result('MAT', SubjectStatus.APROVADO, 7.0)]
    assert not classify_enrollment(results, exactly).high_absenteeism
    assert classify_enrollment(results, above).high_absenteeism
    assert not classify_enrollment(results, compute_attendance([])).high_absenteeism


def test_high_performer_by_average():
    results = [result('MAT', SubjectStatus.APROVADO, 9.0), result('POR', SubjectStatus.APROVADO, 8.0)]
    flags = classify_enrollment(results, FULL)
    assert flags.average_grade == 8.5
    assert flags.high_performer
    assert not classify_enrollment(results, FULL, EngineConfig(high_performer_threshold=9.0)).high_performer


def test_high_performer_subject():
    assert is_high_performer_subject(result('MAT', SubjectStatus.APROVADO, 8.5))
    assert not is_high_performer_subject(result('MAT', SubjectStatus.APROVADO, 8.49))
    assert not is_high_performer_subject(result('MAT', SubjectStatus.CURSANDO, None, REASON_NO_ASSESSMENTS))


def _report(student_id, name, results, attendance=FULL, config=None):
    enrollment = Enrollment(student_id, '2025', 'C1', 'G1', tuple(r.subject_id for r in results),
                            student_name=name, grade_name='1º Ano')
    return EnrollmentReport(enrollment, tuple(results), attendance,
                            classify_enrollment(results, attendance, config))


def test_cohort_summary_aggregates_only_computable_results():
    reports = [
        _report('s1', 'Ana', [result('MAT', SubjectStatus.APROVADO, 9.0, student_id='s1'),
                              result('POR', SubjectStatus.APROVADO, 9.0, student_id='s1')]),
        _report('s2', 'João', [result('MAT', SubjectStatus.REPROVADO, 3.0, student_id='s2'),
                               result('POR', SubjectStatus.REPROVADO, 4.0, student_id='s2')],
                compute_attendance(lessons(presentes=6, faltas=4))),
        _report('s3', 'Pedro', [result('MAT', SubjectStatus.CURSANDO, None, REASON_NO_RULE, student_id='s3')]),
    ]
    summary = summarize_cohort(reports)

    assert summary['totals']['students'] == 3
    assert summary['totals']['evaluated_subjects'] == 4
    assert summary['totals']['at_risk'] == 1
    assert summary['global_average'] == pytest.approx(6.25)
    assert summary['global_pass_rate'] == 50.0
    assert [s['student_id'] for s in summary['at_risk']] == ['s2']
    assert [s['student_id'] for s in summary['high_absenteeism']] == ['s2']
    assert [s['student_id'] for s in summary['high_performers']] == ['s1']
    assert summary['excluded_subjects'] == [{'student_id': 's3', 'subject_id': 'MAT'}]

    subjects = {s['subject_id']: s for s in summary['subjects']}
    assert subjects['MAT']['average'] == 6.0
    assert subjects['MAT']['pass_rate'] == 50.0
    assert subjects['POR']['evaluated'] == 2
    assert summary['levels'] == [{'grade_name': '1º Ano', 'average': 6.25}]


def test_cohort_top_n_limits_lists():
    config = EngineConfig(risk_top_n=2)
    reports = [
        _report(f's{i}', f'Aluno {i}', [result('MAT', SubjectStatus.REPROVADO, 2.0, student_id=f's{i}'),
                                         result('POR', SubjectStatus.REPROVADO, 2.0, student_id=f's{i}')],
                config=config)
        for i in range(5)
    ]
    summary = summarize_cohort(reports, config)
    assert summary['totals']['at_risk'] == 5
    assert [s['student_id'] for s in summary['at_risk']] == ['s0', 's1']


def test_empty_cohort():
    summary = summarize_cohort([])
    assert summary['totals']['students'] == 0
    assert summary['global_average'] is None
    assert summary['at_risk'] == []
    assert summary['thresholds'] == EngineConfig().risk_thresholds()
