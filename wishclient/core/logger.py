import logging
from pathlib import Path

from wishclient.core.config import settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# httpx logs every request at INFO; the gateway already logs its own line
_NOISY_LOGGERS = ("httpx", "httpcore")


def _file_handler_for(root: logging.Logger, log_path: Path) -> logging.FileHandler | None:
    target = str(log_path.resolve())
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return handler
    return None


def configure_logging(level_name: str | None = None, log_file: str | None = None) -> logging.Logger:
    """Attach console and optional file output to the root logger.

    Safe to call more than once: an existing console handler or a handler for
    the same file is reused.
    """
    level_name = (level_name or settings.log_level or "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    log_file = settings.log_file if log_file is None else log_file

    root = logging.getLogger()
    formatter = logging.Formatter(LOG_FORMAT)
    if not root.handlers:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)
    if log_file:
        log_path = Path(log_file)
        if _file_handler_for(root, log_path) is None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    client_logger = logging.getLogger("wishclient")
    client_logger.setLevel(level)
    return client_logger
