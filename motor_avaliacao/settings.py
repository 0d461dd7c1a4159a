# motor_avaliacao/settings.py
from dataclasses import dataclass, replace

from .models import RecoveryStrategy

# Respaldo de frecuencia mínima cuando no hay regla aplicable. Único punto de declaración.
DEFAULT_MIN_ATTENDANCE_PERCENT = 75.0


@dataclass(frozen=True)
class EngineConfig:
    """Umbrales y parámetros del motor, inyectados explícitamente en cada cálculo.

    Se construye desde la config de Flask (o cualquier mapping) con `from_mapping`;
    los overrides por sesión generan una copia con `with_overrides`, nunca mutan
    el objeto compartido.
    """
    default_min_attendance_percent: float = DEFAULT_MIN_ATTENDANCE_PERCENT
    at_risk_threshold: int = 2
    absenteeism_threshold: float = 20.0
    high_performer_threshold: float = 8.5
    default_recovery_strategy: RecoveryStrategy = RecoveryStrategy.MAX
    min_recovery_grade: float = 4.0
    grade_scale_max: float = 10.0
    grade_decimals: int = 2
    batch_max_workers: int = 8
    batch_max_size: int = 50000
    batch_timeout_sec: float = 120.0
    risk_top_n: int = 5
    timezone_name: str = 'America/Sao_Paulo'

    # Clave de config (estilo Flask) -> (atributo, conversión)
    _KEYS = {
        'DEFAULT_MIN_ATTENDANCE_PERCENT': ('default_min_attendance_percent', float),
        'AT_RISK_FAILING_SUBJECTS': ('at_risk_threshold', int),
        'ABSENTEEISM_THRESHOLD_PERCENT': ('absenteeism_threshold', float),
        'HIGH_PERFORMER_GRADE': ('high_performer_threshold', float),
        'DEFAULT_RECOVERY_STRATEGY': ('default_recovery_strategy', RecoveryStrategy.parse),
        'MIN_RECOVERY_GRADE': ('min_recovery_grade', float),
        'GRADE_SCALE_MAX': ('grade_scale_max', float),
        'GRADE_DECIMALS': ('grade_decimals', int),
        'BATCH_MAX_WORKERS': ('batch_max_workers', int),
        'BATCH_MAX_SIZE': ('batch_max_size', int),
        'BATCH_TIMEOUT_SEC': ('batch_timeout_sec', float),
        'RISK_TOP_N': ('risk_top_n', int),
        'TIMEZONE_NAME': ('timezone_name', str),
    }

    @classmethod
    def from_mapping(cls, mapping):
        kwargs = {}
        for key, (attr, conv) in cls._KEYS.items():
            if mapping.get(key) is not None:
                kwargs[attr] = conv(mapping[key])
        return cls(**kwargs)

    def with_overrides(self, **overrides):
        cleaned = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **cleaned)

    def risk_thresholds(self):
        return {
            'at_risk_threshold': self.at_risk_threshold,
            'absenteeism_threshold': self.absenteeism_threshold,
            'high_performer_threshold': self.high_performer_threshold,
        }
