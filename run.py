# run.py
import os

import config
from generador_datos import generar_red
from motor_avaliacao import DataFrameSource, create_app

# Determinar la configuración a usar (ej. 'dev' o 'prod')
config_name = os.getenv('FLASK_CONFIG', 'dev')
cfg = config.config_by_name[config_name]

# Sin capa de persistencia conectada, la API se sirve sobre una red sintética
source = DataFrameSource(**generar_red(cfg.DEMO_NUM_STUDENTS, cfg.DEMO_RANDOM_SEED))
app = create_app(config_name, data_source=source)

if __name__ == '__main__':
    app.run(host='127.0.0.1', port=5000, debug=cfg.DEBUG)
