# app/config/logger.py
import logging
import sys

from app.config.config import settings

LOG_LEVEL = logging.DEBUG if settings.env == "dev" else logging.INFO
LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"

logger = logging.getLogger("abiturchance")
logger.setLevel(LOG_LEVEL)

# модуль импортируют и скрипты, и тесты: один обработчик на процесс
if not logger.handlers:
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(LOG_LEVEL)
    stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(stdout_handler)
