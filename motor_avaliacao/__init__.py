# motor_avaliacao/__init__.py
import logging
import os

from cachelib import FileSystemCache, SimpleCache
from flask import Flask
from flask_session import Session

from .data_sources import DataFrameSource, DataSource
from .engine import EvaluationEngine, evaluate_subject
from .models import EvaluationMode, SubjectStatus
from .rules import ConfigurationError, RuleRegistry, resolve_rule
from .settings import EngineConfig

EXTENSION_KEY = 'motor_avaliacao'


def create_app(config_name='dev', data_source=None):
    """
    Application factory: configura Flask, logging, sesiones y el motor de evaluación.

    `data_source` es la fuente de datos crudos (implementación de DataSource). Sin ella
    el motor trabaja sobre una fuente vacía y toda evaluación sale como datos insuficientes.
    """
    app = Flask(__name__, instance_relative_config=True)

    try:
        import config
        app.config.from_object(config.config_by_name[config_name])
    except KeyError as e:
        raise ValueError(f"Configuración desconocida: {config_name!r}") from e

    # Configurar logging según configuración
    level_name = str(app.config.get('LOG_LEVEL', 'INFO')).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    app.logger.setLevel(level)
    app.logger.info(f"Configuración '{config_name}' cargada; nivel de logging {level_name}")

    # --- Sesiones del lado del servidor (overrides de umbrales de riesgo por usuario) ---
    app.config["SESSION_TYPE"] = "cachelib"
    app.config["SESSION_PERMANENT"] = False
    if app.testing:
        app.config["SESSION_CACHELIB"] = SimpleCache()
    else:
        session_file_dir = os.path.join(app.instance_path, 'flask_session')
        os.makedirs(session_file_dir, exist_ok=True)
        app.config["SESSION_CACHELIB"] = FileSystemCache(session_file_dir)
    Session(app)
    app.secret_key = app.config['SECRET_KEY']

    engine_config = EngineConfig.from_mapping(app.config)
    source = data_source if data_source is not None else DataFrameSource()
    app.extensions[EXTENSION_KEY] = EvaluationEngine(source, engine_config)
    app.logger.info(
        "Motor de avaliação listo (riesgo: %s)", engine_config.risk_thresholds()
    )

    from . import routes
    app.register_blueprint(routes.main_bp)

    return app


__all__ = [
    'ConfigurationError', 'DataFrameSource', 'DataSource', 'EngineConfig', 'EvaluationEngine',
    'EvaluationMode', 'RuleRegistry', 'SubjectStatus', 'create_app', 'evaluate_subject', 'resolve_rule',
]
