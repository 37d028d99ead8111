import logging
import logging.config
import os
import json
import re
from datetime import datetime, timezone
from typing import Optional
import contextvars

import yaml

from .config import LOG_FORMAT, LOG_LEVEL, LOG_SAMPLE_RATE, LOG_EXCLUDE_PATHS

# Context variable for trace ID
trace_id_var = contextvars.ContextVar('trace_id', default=None)

_RESERVED = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
}


def get_trace_id() -> Optional[str]:
    """Get the current trace ID from context"""
    return trace_id_var.get()


_TOKEN_QUERY = re.compile(r"([?&]token=)[^&\s\"]+")


class RedactTokenFilter(logging.Filter):
    """Masks `token` query parameters (display socket URLs) in log messages"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _TOKEN_QUERY.sub(r"\1[REDACTED]", message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


class JsonFormatter(logging.Formatter):
    """JSON formatter with structured fields"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "trace_id": get_trace_id(),
            "component": getattr(record, 'component', 'api'),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def setup_logging():
    """Setup logging configuration from YAML file or environment"""

    log_format = LOG_FORMAT if LOG_FORMAT in ("json", "text") else "json"

    config = None
    if os.path.exists("LOGGING.yaml"):
        try:
            with open("LOGGING.yaml", 'r') as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            print(f"Warning: Could not load LOGGING.yaml: {e}")

    if not config:
        config = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": JsonFormatter},
                "text": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S"
                }
            },
            "filters": {
                "redact_tokens": {"()": RedactTokenFilter},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": LOG_LEVEL,
                    "formatter": log_format,
                    "filters": ["redact_tokens"],
                    "stream": "ext://sys.stdout"
                }
            },
            "loggers": {
                "callpanel": {"level": LOG_LEVEL, "handlers": ["console"], "propagate": False},
                "uvicorn": {"level": LOG_LEVEL, "handlers": ["console"], "propagate": False},
                "uvicorn.access": {"level": LOG_LEVEL, "handlers": ["console"], "propagate": False},
            },
            "root": {
                "level": LOG_LEVEL,
                "handlers": ["console"]
            }
        }

    logging.config.dictConfig(config)

    # Stored for TracingMiddleware
    logging._config = {
        "exclude_paths": LOG_EXCLUDE_PATHS,
        "sample_rate": LOG_SAMPLE_RATE
    }

    return config
