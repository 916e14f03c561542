# orderdesk/config/logging.py
import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from .settings import Settings, get_settings

# Custom formatter with colors for console output
class ColoredFormatter(logging.Formatter):
    """Custom formatter with color coding for different log levels."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record):
        levelname = record.levelname
        color = self.COLORS.get(levelname, self.COLORS['RESET'])
        record.levelname = f"{color}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname

# JSON formatter for structured logging
class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging in production."""

    EXTRA_FIELDS = ('request_id', 'user_id', 'duration', 'order_id', 'rep_id', 'table', 'row_count')

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for field in self.EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """Logging configuration dictionary for the given settings."""
    if settings.LOG_JSON:
        console_formatter = 'json'
    elif settings.DEBUG:
        console_formatter = 'colored'
    else:
        console_formatter = 'standard'

    handlers: Dict[str, Any] = {
        'console': {
            'level': 'DEBUG' if settings.DEBUG else 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': console_formatter,
            'stream': 'ext://sys.stdout'
        }
    }
    app_handlers = ['console']

    if settings.LOG_FILE:
        log_dir = os.path.dirname(settings.LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers['file'] = {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'json' if settings.LOG_JSON else 'detailed',
            'filename': settings.LOG_FILE,
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5,
            'encoding': 'utf8'
        }
        app_handlers.append('file')

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': settings.LOG_FORMAT,
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(funcName)s(): %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'colored': {
                '()': ColoredFormatter,
                'format': settings.LOG_FORMAT,
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'json': {
                '()': JSONFormatter
            }
        },
        'handlers': handlers,
        'loggers': {
            'orderdesk': {
                'handlers': app_handlers,
                'level': settings.LOG_LEVEL,
                'propagate': False
            },
            'api': {
                'handlers': app_handlers,
                'level': 'INFO',
                'propagate': False
            },
            'database': {
                'handlers': app_handlers,
                'level': 'DEBUG' if settings.DEBUG else 'WARNING',
                'propagate': False
            },
            'uvicorn': {
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': False
            },
            'sqlalchemy': {
                'handlers': ['console'],
                'level': 'WARNING',
                'propagate': False
            },
            'sqlalchemy.engine': {
                'handlers': ['console'],
                'level': 'INFO' if settings.DEBUG else 'WARNING',
                'propagate': False
            }
        }
    }


def setup_logging(settings: Optional[Settings] = None):
    """Setup logging configuration."""
    settings = settings or get_settings()
    logging.config.dictConfig(build_logging_config(settings))

    logging.getLogger("multipart").setLevel(logging.WARNING)
    if not settings.DEBUG:
        # Reduce noise in production
        logging.getLogger("httpx").setLevel(logging.WARNING)

def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)

def log_api_request(request_id: str, method: str, path: str, user_id: str = None):
    """Log API request information."""
    logger = get_logger("api")
    extra = {'request_id': request_id}
    if user_id:
        extra['user_id'] = user_id
    logger.info(f"{method} {path}", extra=extra)

def log_api_response(request_id: str, status_code: int, duration: float):
    """Log API response information."""
    logger = get_logger("api")
    extra = {'request_id': request_id, 'duration': duration}
    logger.info(f"Response: {status_code} ({duration:.3f}s)", extra=extra)

def log_database_operation(operation: str, table: str, row_count: int = None, details: str = None):
    """Log database operations."""
    logger = get_logger("database")
    extra = {'table': table}
    if row_count is not None:
        extra['row_count'] = row_count

    message = f"DB Operation: {operation} - Table: {table}"
    if row_count is not None:
        message += f" - Rows: {row_count}"
    if details:
        message += f" - {details}"

    logger.debug(message, extra=extra)

# Export commonly used functions
__all__ = [
    "setup_logging",
    "build_logging_config",
    "get_logger",
    "log_api_request",
    "log_api_response",
    "log_database_operation",
]
