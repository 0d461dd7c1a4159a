import pytest
import os
import sys

# Asegurar que el directorio raíz del proyecto esté en el path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from motor_avaliacao import DataFrameSource, create_app


def _red_pequena():
    """Red mínima: un curso con regla, otro sin regla, tres alumnos."""
    periods = [
        {'id': f'b{n}', 'year_id': '2025', 'period_type': 'Bimestre', 'sequence': n}
        for n in range(1, 5)
    ]
    # Un trimestre del mismo año que la regla bimestral debe ignorar
    periods.append({'id': 't1', 'year_id': '2025', 'period_type': 'Trimestre', 'sequence': 1})

    rules = [
        {'id': 'r1', 'course_id': 'C1', 'education_grade_id': None, 'min_approval_grade': 6.0,
         'min_attendance_percent': 75.0, 'period_type': 'Bimestre', 'periods_per_year': 4,
         'allow_recovery': False, 'active': True},
    ]
    types = [{'id': 'prova', 'name': 'Prova', 'weight': 1, 'max_score': 10}]

    enrollments = [
        {'student_id': 's1', 'year_id': '2025', 'course_id': 'C1', 'education_grade_id': 'G1',
         'student_name': 'Ana Silva', 'grade_name': '1º Ano', 'subject_ids': ['MAT', 'POR']},
        {'student_id': 's2', 'year_id': '2025', 'course_id': 'C1', 'education_grade_id': 'G1',
         'student_name': 'João Souza', 'grade_name': '1º Ano', 'subject_ids': ['MAT', 'POR']},
        {'student_id': 's3', 'year_id': '2025', 'course_id': 'C9', 'education_grade_id': None,
         'student_name': 'Pedro Lima', 'grade_name': '', 'subject_ids': ['MAT']},
    ]

    assessments = []
    n = 0
    # s1 MAT: 7, 5, 8 y b4 sin notas -> 6.67; una nota en el trimestre que no cuenta
    for pid, value in (('b1', 7.0), ('b2', 5.0), ('b3', 8.0), ('t1', 0.0)):
        n += 1
        assessments.append({'id': f'a{n}', 'student_id': 's1', 'subject_id': 'MAT', 'period_id': pid,
                            'assessment_type_id': 'prova', 'raw_value': value, 'category': 'regular'})
    # s2 reprueba MAT y POR
    for subject in ('MAT', 'POR'):
        for pid in ('b1', 'b2'):
            n += 1
            assessments.append({'id': f'a{n}', 'student_id': 's2', 'subject_id': subject, 'period_id': pid,
                                'assessment_type_id': 'prova', 'raw_value': 3.0, 'category': 'regular'})

    attendance = []
    for student, presentes in (('s1', 8), ('s2', 9)):
        for i in range(10):
            attendance.append({'student_id': student, 'lesson_id': f'l{i}', 'period_id': 'b1',
                               'status': 'Presente' if i < presentes else 'Falta'})

    return dict(assessments=assessments, attendance=attendance, periods=periods,
                assessment_types=types, rules=rules, enrollments=enrollments)


@pytest.fixture
def source():
    return DataFrameSource(**_red_pequena())


@pytest.fixture
def app(source):
    """Crea una instancia de la aplicación para pruebas."""
    app = create_app(config_name='test', data_source=source)

    # Contexto de aplicación para que las pruebas tengan acceso a 'current_app'
    with app.app_context():
        yield app


@pytest.fixture
def engine(app):
    return app.extensions['motor_avaliacao']


@pytest.fixture
def client(app):
    """Crea un cliente de prueba para realizar peticiones."""
    return app.test_client()
