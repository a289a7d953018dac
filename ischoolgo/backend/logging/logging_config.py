import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from ..config.config import settings

LOG_FORMAT = "%(asctime)s - [%(name)s] - %(levelname)s - %(message)s"


def setup_logging(log_dir: str = None, level: str = None) -> logging.Logger:
    """
    Configures the root logger once for the whole process.

    Records go to stdout and to a rotating ``app.log`` inside ``log_dir``
    (5 MB per file, five backups). Handlers installed earlier, e.g. by uvicorn,
    are removed so every line shares the same format.
    """
    directory = Path(log_dir or settings.LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())

    if root.hasHandlers():
        root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root.addHandler(stdout_handler)

    file_handler = RotatingFileHandler(
        directory / "app.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    return root
