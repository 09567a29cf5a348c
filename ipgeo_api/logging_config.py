import logging
import logging.config
import os
import yaml
import json
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from .config import LOG_FORMAT, LOG_LEVEL

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'taskName', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'message', 'asctime',
])

class JsonFormatter(logging.Formatter):
    """JSON formatter emitting one object per record with its extra fields"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        # Add exception info if present
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)

def _default_config(log_format: str, log_level: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
            "text": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": log_format,
                "stream": "ext://sys.stdout"
            }
        },
        "loggers": {
            "ipgeo": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False
            },
            "uvicorn": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False
            },
            "uvicorn.error": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False
            },
            # The lookup handler writes its own access line
            "uvicorn.access": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            }
        },
        "root": {
            "level": log_level,
            "handlers": ["console"]
        }
    }

def setup_logging(config_path: str = "LOGGING.yaml",
                  log_format: Optional[str] = None,
                  log_level: Optional[str] = None) -> Dict[str, Any]:
    """Setup logging configuration from YAML file or environment"""

    log_format = log_format or LOG_FORMAT
    log_level = (log_level or LOG_LEVEL).upper()
    if log_format not in ("json", "text"):
        log_format = "json"

    # Try to load YAML config
    config = None
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logging.getLogger("ipgeo").warning(
                "Could not load %s, using defaults: %s", config_path, e
            )
            config = None

    # Fallback to built-in config if YAML not available
    if not config:
        config = _default_config(log_format, log_level)

    logging.config.dictConfig(config)
    return config
