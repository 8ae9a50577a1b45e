"""
Logging configuration for the Workflow Catalog

Sets up file-based logging with rotation:
- app.log: General application logs (INFO and above)
- error.log: Error logs only (ERROR and above)
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import settings

_configured = False


def setup_logging(log_dir: str = None):
    """
    Configure application-wide logging

    Creates two log files:
    - <LOG_DIR>/app.log: All application logs (INFO, WARNING, ERROR)
    - <LOG_DIR>/error.log: Error logs only (ERROR, CRITICAL)

    Both files rotate at 10MB with 5 backup files kept.
    Console output shows only WARNING and above.
    Safe to call more than once; handlers are installed on the first call only.
    """
    global _configured
    logger = logging.getLogger(__name__)
    if _configured:
        return logger

    log_path = Path(log_dir or settings.LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)-8s [%(name)s:%(lineno)d] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # 1. General application log file (INFO and above)
    app_log_file = log_path / "app.log"
    file_handler = RotatingFileHandler(
        app_log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(file_handler)

    # 2. Error log file (ERROR and above only)
    error_log_file = log_path / "error.log"
    error_handler = RotatingFileHandler(
        error_log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(error_handler)

    # 3. Console output (WARNING and above only)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    # SQLAlchemy query logging is far too verbose for the step loop
    for name in ('sqlalchemy.engine', 'sqlalchemy.pool', 'sqlalchemy.dialects', 'sqlalchemy.orm'):
        logging.getLogger(name).setLevel(logging.WARNING)

    # The UI polls status and process endpoints every few hundred ms
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('openai').setLevel(logging.WARNING)

    _configured = True

    logger.info("=" * 60)
    logger.info(f"{settings.APP_NAME} - Logging Initialized")
    logger.info(f"Application logs: {app_log_file}")
    logger.info(f"Error logs: {error_log_file}")
    logger.info("=" * 60)

    return logger
