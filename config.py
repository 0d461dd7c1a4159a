# config.py
import os
from dotenv import load_dotenv

from motor_avaliacao.settings import DEFAULT_MIN_ATTENDANCE_PERCENT

# Cargar variables de entorno desde .env (umbrales y parámetros de lotes)
load_dotenv()

class Config:
    """Clase base de configuración."""
    SECRET_KEY = os.environ.get('FLASK_SECRET_KEY', 'una-clave-secreta-muy-dificil-de-adivinar')
    DEBUG = False
    TESTING = False

    # Zona horaria centralizada para determinar el período vigente
    TIMEZONE_NAME = os.environ.get('TIMEZONE_NAME', 'America/Sao_Paulo')

    # Nivel de logging de la aplicación (INFO por defecto)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # --- INICIO: UMBRALES DEL MOTOR DE EVALUACIÓN ---
    # El motor los recibe siempre vía EngineConfig.from_mapping(app.config).

    # Frecuencia mínima (%) cuando no existe regla aplicable para el curso/serie
    DEFAULT_MIN_ATTENDANCE_PERCENT = float(os.environ.get('DEFAULT_MIN_ATTENDANCE_PERCENT', DEFAULT_MIN_ATTENDANCE_PERCENT))

    # Clasificación de riesgo
    AT_RISK_FAILING_SUBJECTS = int(os.environ.get('AT_RISK_FAILING_SUBJECTS', 2))
    ABSENTEEISM_THRESHOLD_PERCENT = float(os.environ.get('ABSENTEEISM_THRESHOLD_PERCENT', 20.0))
    HIGH_PERFORMER_GRADE = float(os.environ.get('HIGH_PERFORMER_GRADE', 8.5))

    # Recuperación: estrategia por defecto si la regla no la define ('Replace' | 'Average' | 'Max')
    DEFAULT_RECOVERY_STRATEGY = os.environ.get('DEFAULT_RECOVERY_STRATEGY', 'Max')
    # Piso de la banda recuperable (por debajo de esta nota ya no hay recuperación)
    MIN_RECOVERY_GRADE = float(os.environ.get('MIN_RECOVERY_GRADE', 4.0))

    # Escala de notas y redondeo
    GRADE_SCALE_MAX = 10.0
    GRADE_DECIMALS = 2
    # --- FIN: UMBRALES DEL MOTOR DE EVALUACIÓN ---

    # Recálculo en lote (toda la red municipal)
    BATCH_MAX_WORKERS = int(os.environ.get('BATCH_MAX_WORKERS', 8))
    BATCH_MAX_SIZE = int(os.environ.get('BATCH_MAX_SIZE', 50000))
    BATCH_TIMEOUT_SEC = float(os.environ.get('BATCH_TIMEOUT_SEC', 120))

    # Largo de los rankings en los resúmenes de cohorte (en riesgo, ausentismo, destacados)
    RISK_TOP_N = 5

    # Datos de demostración usados por run.py
    DEMO_NUM_STUDENTS = int(os.environ.get('DEMO_NUM_STUDENTS', 120))
    DEMO_RANDOM_SEED = 42


class DevelopmentConfig(Config):
    """Configuración para desarrollo."""
    DEBUG = True

class ProductionConfig(Config):
    """Configuración para producción."""
    DEBUG = False

class TestingConfig(Config):
    """Configuración para pruebas."""
    TESTING = True
    DEBUG = True
    LOG_LEVEL = 'DEBUG'
    BATCH_MAX_WORKERS = 4

config_by_name = dict(
    dev=DevelopmentConfig,
    prod=ProductionConfig,
    test=TestingConfig
)
