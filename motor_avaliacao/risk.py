# motor_avaliacao/risk.py
"""Clasificación de riesgo por matrícula y resúmenes de cohorte.

Los tres umbrales (AtRisk, HighAbsenteeism, HighPerformer) vienen siempre del
EngineConfig recibido; ningún llamador los redeclara.
"""
import logging

import numpy as np
import pandas as pd

from .models import RiskFlags, SubjectStatus
from .settings import EngineConfig
from .utils import round_grade

logger = logging.getLogger(__name__)

_FAILING = (SubjectStatus.REPROVADO, SubjectStatus.EM_RECUPERACAO)


def is_failing(result):
    return result.is_computable and result.status in _FAILING


def is_high_performer_subject(result, config=None):
    config = config or EngineConfig()
    return result.is_computable and result.final_grade >= config.high_performer_threshold


def classify_enrollment(results, attendance, config=None) -> RiskFlags:
    """Banderas de riesgo de una matrícula a partir de sus resultados por asignatura.

    - at_risk: asignaturas reprobadas (o en recuperación) >= at_risk_threshold
    - high_absenteeism: 100 - frecuencia > absenteeism_threshold; sin registros, False
    - high_performer: promedio de las asignaturas con nota >= high_performer_threshold
    """
    config = config or EngineConfig()
    computable = [r for r in results if r.is_computable]
    failing = sum(1 for r in computable if is_failing(r))
    average = None
    if computable:
        average = round_grade(float(np.mean([r.final_grade for r in computable])), config.grade_decimals)

    absence = attendance.absence_percentage if attendance is not None else None
    return RiskFlags(
        at_risk=failing >= config.at_risk_threshold,
        high_absenteeism=absence is not None and absence > config.absenteeism_threshold,
        high_performer=average is not None and average >= config.high_performer_threshold,
        failing_subjects_count=failing,
        computable_subjects_count=len(computable),
        average_grade=average,
        absence_percentage=absence,
    )


def _results_frame(reports):
    rows = []
    for rep in reports:
        for r in rep.results:
            rows.append({
                'student_id': rep.enrollment.student_id,
                'student_name': rep.enrollment.student_name,
                'grade_name': rep.enrollment.grade_name or rep.enrollment.education_grade_id or '',
                'subject_id': r.subject_id,
                'final_grade': r.final_grade if r.is_computable else np.nan,
                'status': r.status.value,
                'is_passing': r.is_passing,
                'computable': r.is_computable,
                'excluded': r.excluded,
            })
    columns = ['student_id', 'student_name', 'grade_name', 'subject_id', 'final_grade',
               'status', 'is_passing', 'computable', 'excluded']
    return pd.DataFrame(rows, columns=columns)


def _students_frame(reports):
    rows = [{
        'student_id': rep.enrollment.student_id,
        'student_name': rep.enrollment.student_name,
        'grade_name': rep.enrollment.grade_name or rep.enrollment.education_grade_id or '',
        'failing_subjects_count': rep.risk.failing_subjects_count,
        'average_grade': rep.risk.average_grade,
        'absence_percentage': rep.risk.absence_percentage,
        'at_risk': rep.risk.at_risk,
        'high_absenteeism': rep.risk.high_absenteeism,
        'high_performer': rep.risk.high_performer,
    } for rep in reports]
    columns = ['student_id', 'student_name', 'grade_name', 'failing_subjects_count', 'average_grade',
               'absence_percentage', 'at_risk', 'high_absenteeism', 'high_performer']
    return pd.DataFrame(rows, columns=columns)


def _records(df, cols):
    out = []
    for _, row in df.iterrows():
        item = {}
        for c in cols:
            v = row[c]
            if isinstance(v, (np.floating, float)):
                item[c] = None if pd.isna(v) else round_grade(float(v), 2)
            elif isinstance(v, np.integer):
                item[c] = int(v)
            else:
                item[c] = v
        out.append(item)
    return out


def summarize_cohort(reports, config=None) -> dict:
    """Resumen de una cohorte (escuela, red) a partir de EnrollmentReport.

    Promedios y tasas de aprobación se calculan solo sobre resultados computables;
    las asignaturas sin regla se listan en `excluded_subjects` para que no pasen
    desapercibidas.
    """
    config = config or EngineConfig()
    reports = list(reports)
    top_n = config.risk_top_n
    df = _results_frame(reports)
    students = _students_frame(reports)

    summary = {
        'totals': {
            'students': len(students),
            'evaluated_subjects': int(df['computable'].sum()) if not df.empty else 0,
            'at_risk': int(students['at_risk'].sum()) if not students.empty else 0,
            'high_absenteeism': int(students['high_absenteeism'].sum()) if not students.empty else 0,
            'high_performers': int(students['high_performer'].sum()) if not students.empty else 0,
        },
        'thresholds': config.risk_thresholds(),
        'global_average': None,
        'global_pass_rate': None,
        'subjects': [],
        'levels': [],
        'at_risk': [],
        'high_absenteeism': [],
        'high_performers': [],
        'excluded_subjects': [],
    }
    if df.empty:
        return summary

    excluded = df[df['excluded']]
    summary['excluded_subjects'] = excluded[['student_id', 'subject_id']].to_dict('records')
    if not excluded.empty:
        logger.warning("%d asignaturas sin regla aplicable quedaron fuera del resumen", len(excluded))

    evaluated = df[df['computable']].copy()
    if not evaluated.empty:
        summary['global_average'] = round_grade(float(evaluated['final_grade'].mean()), 2)
        summary['global_pass_rate'] = round_grade(float(evaluated['is_passing'].mean() * 100.0), 1)

        subj = (
            evaluated.groupby('subject_id')
            .agg(average=('final_grade', 'mean'), pass_rate=('is_passing', 'mean'), evaluated=('final_grade', 'size'))
            .reset_index()
        )
        subj['pass_rate'] = subj['pass_rate'] * 100.0
        subj = subj.sort_values(['average', 'subject_id'])
        summary['subjects'] = _records(subj, ['subject_id', 'average', 'pass_rate', 'evaluated'])

        levels = evaluated.groupby('grade_name')['final_grade'].mean().reset_index(name='average')
        summary['levels'] = _records(levels.sort_values('grade_name'), ['grade_name', 'average'])

    cols = ['student_id', 'student_name', 'grade_name', 'failing_subjects_count', 'average_grade', 'absence_percentage']
    at_risk = students[students['at_risk']].sort_values(
        ['failing_subjects_count', 'student_id'], ascending=[False, True])
    summary['at_risk'] = _records(at_risk.head(top_n), cols)

    absent = students[students['high_absenteeism']].sort_values(
        ['absence_percentage', 'student_id'], ascending=[False, True])
    summary['high_absenteeism'] = _records(absent.head(top_n), cols)

    performers = students[students['high_performer']].sort_values(
        ['average_grade', 'student_id'], ascending=[False, True])
    summary['high_performers'] = _records(performers.head(top_n), cols)
    return summary
