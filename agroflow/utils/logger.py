import logging
import sys
from pathlib import Path

from agroflow.config.settings import LOG_DIR, LOG_LEVEL

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str = "agroflow", log_dir: str = LOG_DIR, level=LOG_LEVEL):
    """
    Configures the package logger: console output plus an optional UTF-8 log
    file at `{log_dir}/{name}.log`. Module loggers (`agroflow.*`) propagate here.

    Calling it again only updates the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Only this logger's own handlers count; the root logger may be configured by uvicorn
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path / f"{name}.log", encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
