import os
from typing import Any
from pathlib import Path

PROJECT_NAME = "event_sink"

# Paths
PROJECT_ROOT_DIR = Path(__file__).parent.parent.parent.resolve()

ENV_FILE_PATH = PROJECT_ROOT_DIR / ".env"
CONFIG_DIR = PROJECT_ROOT_DIR / "config"
DEFAULT_PATHS_FILE = CONFIG_DIR / "paths.yaml"
LOG_FOLDER = Path(os.getenv("EVENT_SINK_LOG_DIR", str(PROJECT_ROOT_DIR / "logs")))

os.makedirs(LOG_FOLDER, exist_ok=True)

# Columns
DEFAULT_TIME_COLUMN = "time"

# Logging Configuration

LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": os.getenv("LOG_LEVEL", "INFO").upper(),
        },
        "rotating_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "level": "DEBUG",
            "filename": str(LOG_FOLDER / f"{PROJECT_NAME}.log"),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "encoding": "utf8",
        },
    },
    "loggers": {
        "": {  # root logger
            "handlers": ["console", "rotating_file"],
            "level": "DEBUG",
            "propagate": True
        },
        "asyncpg": {
            "level": "WARNING",
        },
    }

}
