# motor_avaliacao/routes.py
from flask import Blueprint, current_app, jsonify, request, session
from werkzeug.exceptions import HTTPException

from .models import EvaluationMode

main_bp = Blueprint('main', __name__)

SESSION_RISK_KEY = 'risk_thresholds'


# --- Manejador global de errores para API: devuelve JSON en vez de HTML ---
@main_bp.errorhandler(Exception)
def handle_main_bp_exception(e):
    if isinstance(e, HTTPException):
        return jsonify({"error": e.description}), e.code
    if isinstance(e, ValueError):
        current_app.logger.info(f"Solicitud inválida en {request.path}: {e}")
        return jsonify({"error": "bad_request", "detail": str(e)}), 400
    current_app.logger.exception(f"Excepción no controlada en API: {e}")
    return jsonify({"error": "Error inesperado en el servidor."}), 500


def _engine():
    from . import EXTENSION_KEY
    return current_app.extensions[EXTENSION_KEY]


def _request_config():
    """Config del motor para esta solicitud: la de la app más los overrides de la sesión."""
    base = _engine().config
    overrides = session.get(SESSION_RISK_KEY) or {}
    return base.with_overrides(**overrides)


def _mode():
    return EvaluationMode.parse(request.args.get('mode', EvaluationMode.AUTHORITATIVE.value))


@main_bp.route('/api/health', methods=['GET'])
def api_health():
    return jsonify({'status': 'ok'}), 200


@main_bp.route('/api/rules/resolve', methods=['GET'])
def api_resolve_rule():
    course_id = request.args.get('course_id')
    if not course_id:
        return jsonify({'error': 'bad_request', 'detail': "'course_id' es obligatorio"}), 400
    grade_id = request.args.get('grade_id') or None
    rule = _engine().resolve_rule(course_id, grade_id)
    if rule is None:
        return jsonify({'rule': None, 'course_id': course_id, 'grade_id': grade_id}), 200
    return jsonify({
        'rule': {
            'id': rule.id,
            'name': rule.name,
            'course_id': rule.course_id,
            'education_grade_id': rule.education_grade_id,
            'min_approval_grade': rule.min_approval_grade,
            'min_attendance_percent': rule.min_attendance_percent,
            'period_type': rule.period_type.value,
            'periods_per_year': rule.periods_per_year,
            'allow_recovery': rule.allow_recovery,
            'recovery_strategy': rule.recovery_strategy.value if rule.recovery_strategy else None,
            'period_weights': list(rule.period_weights) if rule.period_weights else None,
        },
        'course_id': course_id,
        'grade_id': grade_id,
    }), 200


@main_bp.route('/api/evaluate/<student_id>/<subject_id>/<year_id>', methods=['GET'])
def api_evaluate(student_id, subject_id, year_id):
    result = _engine().evaluate(student_id, subject_id, year_id, _mode(), _request_config())
    return jsonify(result.to_dict()), 200


@main_bp.route('/api/enrollment/<student_id>/<year_id>', methods=['GET'])
def api_enrollment(student_id, year_id):
    report = _engine().evaluate_enrollment(student_id, year_id, _mode(), _request_config())
    if report is None:
        return jsonify({'error': 'not_found', 'detail': 'Matrícula no encontrada'}), 404
    return jsonify(report.to_dict()), 200


@main_bp.route('/api/cohort_summary/<year_id>', methods=['GET'])
def api_cohort_summary(year_id):
    summary = _engine().cohort_summary(year_id, _mode(), _request_config())
    return jsonify(summary), 200


@main_bp.route('/api/risk_thresholds', methods=['GET', 'POST'])
def api_risk_thresholds():
    if request.method == 'GET':
        return jsonify(_request_config().risk_thresholds()), 200
    data = request.get_json(silent=True) or {}
    if data.get('reset'):
        session.pop(SESSION_RISK_KEY, None)
        return jsonify({'message': 'reset', **_engine().config.risk_thresholds()}), 200

    defaults = _engine().config
    def as_float(v, d):
        try:
            return float(v)
        except (TypeError, ValueError):
            return d
    def as_int(v, d):
        try:
            return int(v)
        except (TypeError, ValueError):
            return d
    cleaned = {
        'at_risk_threshold': as_int(data.get('at_risk_threshold'), defaults.at_risk_threshold),
        'absenteeism_threshold': as_float(data.get('absenteeism_threshold'), defaults.absenteeism_threshold),
        'high_performer_threshold': as_float(data.get('high_performer_threshold'), defaults.high_performer_threshold),
    }
    session[SESSION_RISK_KEY] = cleaned
    current_app.logger.info(f"Umbrales de riesgo de la sesión actualizados: {cleaned}")
    return jsonify(cleaned), 200
