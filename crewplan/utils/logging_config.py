import logging
import sys
from crewplan.config.settings import get_settings

settings = get_settings()

# Reloads (uvicorn --reload, test imports) must not stack handlers
_console_handler = None


def setup_logging():
    """Configure application-wide logging."""
    global _console_handler
    log_level = logging.DEBUG if settings.debug else logging.INFO

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
    if _console_handler not in root_logger.handlers:
        root_logger.addHandler(_console_handler)
    _console_handler.setLevel(log_level)
    _console_handler.setFormatter(formatter)

    # Quiet down noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return root_logger
