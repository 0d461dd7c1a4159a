from factories import lessons, make_rule
from motor_avaliacao.attendance import compute_attendance, filter_attendance
from motor_avaliacao.models import AttendanceRecord
from motor_avaliacao.settings import EngineConfig


def test_justified_absences_count_as_absences():
    records = lessons(presentes=7, faltas=2, justificadas=1)
    summary = compute_attendance(records, make_rule(min_attendance_percent=75.0))
    assert summary.total == 10
    assert summary.presences == 7
    assert summary.absences == 3
    assert summary.justified_absences == 1
    assert summary.percentage == 70.0
    assert summary.meets_minimum is False
    assert summary.absence_percentage == 30.0


def test_threshold_is_inclusive():
    summary = compute_attendance(lessons(presentes=3, faltas=1), make_rule(min_attendance_percent=75.0))
    assert summary.percentage == 75.0
    assert summary.meets_minimum is True


def test_no_records_is_insufficient_not_failing():
    summary = compute_attendance([], make_rule())
    assert summary.total == 0
    assert summary.percentage == 0.0
    assert summary.insufficient_data
    assert summary.meets_minimum is None
    assert summary.absence_percentage is None


def test_fallback_threshold_without_rule():
    summary = compute_attendance(lessons(presentes=7, faltas=3))
    assert summary.threshold_used == 75.0
    assert summary.meets_minimum is False

    relaxed = compute_attendance(lessons(presentes=7, faltas=3), None,
                                 EngineConfig(default_min_attendance_percent=60.0))
    assert relaxed.threshold_used == 60.0
    assert relaxed.meets_minimum is True


def test_percentage_rounded_to_two_decimals():
    summary = compute_attendance(lessons(presentes=2, faltas=1))
    assert summary.percentage == 66.67


def test_status_strings_accepted():
    records = [
        AttendanceRecord('s1', 'l1', 'presente'),
        AttendanceRecord('s1', 'l2', 'FALTA'),
        AttendanceRecord('s1', 'l3', 'falta justificada'),
    ]
    summary = compute_attendance(records)
    assert (summary.presences, summary.absences, summary.justified_absences) == (1, 2, 1)


def test_filter_keeps_daily_records_without_subject():
    records = (
        lessons(presentes=2, subject_id='MAT')
        + lessons(presentes=3, subject_id='POR')
        + lessons(presentes=1, period_id='b2')
    )
    assert len(filter_attendance(records, subject_id='MAT')) == 3
    assert len(filter_attendance(records, period_ids=['b2'])) == 1
    assert len(filter_attendance(records, subject_id='POR', period_ids=['b1'])) == 3


def test_filter_by_student():
    records = lessons(presentes=4) + lessons(presentes=0, faltas=6, student_id='s2')
    assert len(filter_attendance(records, student_id='s1')) == 4
    assert compute_attendance(filter_attendance(records, student_id='s1')).percentage == 100.0
