import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from .utils.request_context import get_request_id, format_request_id

LOG_FILE_NAME = "xdt-mini-client-mcp-server.log"
ERROR_LOG_FILE_NAME = "error.log"
LOG_BACKUP_DAYS = 14


class RequestIDFormatter(logging.Formatter):
    """Custom log formatter that includes request ID in log messages.

    Format: timestamp [request_id] level logger_name: message
    Example: 2025-08-07 14:30:15,123 [req_a1b2c3] INFO xdt_mcp.relay_client: POST .../forwardBotRequest -> 200
    """

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None):
        if fmt is None:
            fmt = "%(asctime)s [%(request_id)s] %(levelname)s %(name)s: %(message)s"
        elif "[%(request_id)s]" not in fmt:
            fmt = fmt.replace("%(levelname)s", "[%(request_id)s] %(levelname)s")

        super().__init__(fmt, datefmt)

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = format_request_id(get_request_id())
        return super().format(record)


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = None, include_request_id: bool = True):
    """
    Set up logging for the application.

    Console output goes to stderr because stdout carries the MCP stdio stream.
    When ``log_dir`` is given, records are also written to a daily rotating
    file and errors to a separate daily rotating error file.

    Args:
        log_level (str): Logging level as a string (e.g., 'DEBUG', 'INFO').
        log_dir (str): Optional directory for rotating log files.
        include_request_id (bool): Whether to include request IDs in log messages.
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    if include_request_id:
        formatter = RequestIDFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = TimedRotatingFileHandler(
            log_path / LOG_FILE_NAME, when="midnight", backupCount=LOG_BACKUP_DAYS, encoding="utf-8"
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        error_handler = TimedRotatingFileHandler(
            log_path / ERROR_LOG_FILE_NAME, when="midnight", backupCount=LOG_BACKUP_DAYS, encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        root_logger.addHandler(error_handler)

    # Keep the MCP transport quiet on broken pipes during shutdown
    logging.getLogger("mcp.server.stdio").setLevel(logging.CRITICAL)
    logging.getLogger("pymongo").setLevel(max(numeric_level, logging.WARNING))
