import argparse
import datetime
import random

import pandas as pd

BR_FIRST_NAMES = [
    'Maria', 'Ana', 'Francisca', 'Antônia', 'Adriana', 'Juliana', 'Márcia', 'Fernanda', 'Patrícia', 'Aline',
    'José', 'João', 'Antônio', 'Francisco', 'Carlos', 'Paulo', 'Pedro', 'Lucas', 'Luiz', 'Marcos',
    'Gabriel', 'Rafael', 'Daniel', 'Marcelo', 'Bruno', 'Eduardo', 'Felipe', 'Raimundo', 'Rodrigo', 'Manoel',
]
BR_LAST_NAMES = [
    'Silva', 'Santos', 'Oliveira', 'Souza', 'Rodrigues', 'Ferreira', 'Alves', 'Pereira', 'Lima', 'Gomes',
    'Costa', 'Ribeiro', 'Martins', 'Carvalho', 'Almeida', 'Lopes', 'Soares', 'Fernandes', 'Vieira', 'Barbosa',
]

# --- CONFIGURACIÓN ---
ANO_LETIVO = '2025'
CURSOS = {
    # curso -> (serie, nombre de la serie)
    'EF1': [('1', '1º Ano'), ('2', '2º Ano'), ('3', '3º Ano'), ('4', '4º Ano'), ('5', '5º Ano')],
    'EF2': [('6', '6º Ano'), ('7', '7º Ano'), ('8', '8º Ano'), ('9', '9º Ano')],
}
DISCIPLINAS_POR_CURSO = {
    'EF1': ['Português', 'Matemática', 'Ciências', 'História', 'Geografia', 'Arte'],
    'EF2': ['Português', 'Matemática', 'Ciências', 'História', 'Geografia', 'Inglês', 'Educação Física'],
}
BIMESTRES = [
    ('b1', 1, '2025-02-03', '2025-04-11'),
    ('b2', 2, '2025-04-14', '2025-06-27'),
    ('b3', 3, '2025-07-28', '2025-09-30'),
    ('b4', 4, '2025-10-01', '2025-12-12'),
]
TIPOS_AVALIACAO = [
    {'id': 'prova', 'name': 'Prova', 'weight': 6, 'max_score': 10, 'is_recovery': False},
    {'id': 'trabalho', 'name': 'Trabalho', 'weight': 3, 'max_score': 10, 'is_recovery': False},
    {'id': 'participacao', 'name': 'Participação', 'weight': 1, 'max_score': 10, 'is_recovery': False},
    {'id': 'recuperacao', 'name': 'Recuperação', 'weight': 1, 'max_score': 10, 'is_recovery': True},
]
REGRAS = [
    {'id': 'r-ef1', 'name': 'Regra Padrão - Fundamental I', 'course_id': 'EF1', 'education_grade_id': None,
     'min_approval_grade': 6.0, 'min_attendance_percent': 75.0, 'period_type': 'Bimestre',
     'periods_per_year': 4, 'allow_recovery': True, 'recovery_strategy': 'Max', 'active': True},
    {'id': 'r-ef2', 'name': 'Regra Padrão - Fundamental II', 'course_id': 'EF2', 'education_grade_id': None,
     'min_approval_grade': 6.0, 'min_attendance_percent': 75.0, 'period_type': 'Bimestre',
     'periods_per_year': 4, 'allow_recovery': True, 'recovery_strategy': 'Average', 'active': True},
    {'id': 'r-ef2-9', 'name': '9º Ano - Média Ponderada', 'course_id': 'EF2', 'education_grade_id': '9',
     'min_approval_grade': 6.0, 'min_attendance_percent': 75.0, 'period_type': 'Bimestre',
     'periods_per_year': 4, 'allow_recovery': True, 'recovery_strategy': None, 'active': True,
     'period_weights': [2, 3, 2, 3]},
]
RANGO_NOTAS = (2.0, 10.0)
RANGO_ASISTENCIA = (0.65, 1.0)
AULAS_POR_BIMESTRE = 10
PROBABILIDAD_RECUPERACAO = 0.5
PROBABILIDAD_FALTA_JUSTIFICADA = 0.3


def fake_name(rng):
    return f"{rng.choice(BR_FIRST_NAMES)} {rng.choice(BR_LAST_NAMES)}"


def generar_red(num_estudiantes=120, seed=42, bimestres_cerrados=4):
    """Genera una red escolar sintética lista para DataFrameSource.

    Retorna un dict de DataFrames: assessments, attendance, periods, assessment_types,
    rules, enrollments. `bimestres_cerrados` limita cuántos bimestres tienen notas, para
    simular un año en curso.
    """
    rng = random.Random(seed)

    periods = pd.DataFrame([
        {'id': pid, 'year_id': ANO_LETIVO, 'period_type': 'Bimestre', 'sequence': seq,
         'name': f'{seq}º Bimestre', 'start_date': start, 'end_date': end}
        for pid, seq, start, end in BIMESTRES
    ])

    enrollments, assessments, attendance = [], [], []
    assessment_seq = 0
    for i in range(num_estudiantes):
        student_id = f's{i + 1:04d}'
        course_id = rng.choice(list(CURSOS))
        grade_id, grade_name = rng.choice(CURSOS[course_id])
        subjects = DISCIPLINAS_POR_CURSO[course_id]
        enrollments.append({
            'student_id': student_id, 'year_id': ANO_LETIVO, 'course_id': course_id,
            'education_grade_id': grade_id, 'grade_name': grade_name,
            'student_name': fake_name(rng), 'subject_ids': list(subjects),
        })

        # Perfil del alumno: desempeño base y frecuencia esperada
        base = rng.uniform(*RANGO_NOTAS)
        asistencia = rng.uniform(*RANGO_ASISTENCIA)

        for pid, seq, start, end in BIMESTRES[:bimestres_cerrados]:
            for subject in subjects:
                regulares = []
                for tipo in ('prova', 'trabalho', 'participacao'):
                    assessment_seq += 1
                    nota = round(min(10.0, max(0.0, rng.gauss(base, 1.2))), 1)
                    regulares.append(nota)
                    assessments.append({
                        'id': f'a{assessment_seq}', 'student_id': student_id, 'subject_id': subject,
                        'period_id': pid, 'assessment_type_id': tipo, 'raw_value': nota,
                        'category': 'regular',
                    })
                if sum(regulares) / len(regulares) < 6.0 and rng.random() < PROBABILIDAD_RECUPERACAO:
                    assessment_seq += 1
                    assessments.append({
                        'id': f'a{assessment_seq}', 'student_id': student_id, 'subject_id': subject,
                        'period_id': pid, 'assessment_type_id': 'recuperacao',
                        'raw_value': round(rng.uniform(3.0, 10.0), 1), 'category': 'recuperacao',
                    })

            fecha_inicio = datetime.date.fromisoformat(start)
            for aula in range(AULAS_POR_BIMESTRE):
                if rng.random() < asistencia:
                    status = 'Presente'
                elif rng.random() < PROBABILIDAD_FALTA_JUSTIFICADA:
                    status = 'Falta_Justificada'
                else:
                    status = 'Falta'
                attendance.append({
                    'student_id': student_id, 'lesson_id': f'{pid}-l{aula + 1}', 'period_id': pid,
                    'date': fecha_inicio + datetime.timedelta(days=7 * aula), 'status': status,
                })

    return {
        'assessments': pd.DataFrame(assessments),
        'attendance': pd.DataFrame(attendance),
        'periods': periods,
        'assessment_types': pd.DataFrame(TIPOS_AVALIACAO),
        'rules': pd.DataFrame(REGRAS),
        'enrollments': pd.DataFrame(enrollments),
    }


def main():
    parser = argparse.ArgumentParser(description='Genera una red escolar sintética e imprime un resumen.')
    parser.add_argument('--alumnos', type=int, default=120)
    parser.add_argument('--seed', type=int, default=42)
    parser.add_argument('--bimestres', type=int, default=4)
    args = parser.parse_args()

    data = generar_red(args.alumnos, args.seed, args.bimestres)
    for name, df in data.items():
        print(f"{name}: {len(df)} filas")


if __name__ == '__main__':
    main()
