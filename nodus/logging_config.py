"""
Logging configuration with scenario / step context on every record
"""

import logging
import logging.config
from typing import Any, Dict


class ScenarioContextFilter(logging.Filter):
    """Make sure every record carries `scenario` and `step` attributes."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Fill in placeholders for records logged outside a scenario."""
        if not hasattr(record, "scenario"):
            record.scenario = "-"
        if not hasattr(record, "step"):
            record.step = "-"
        return True  # Never drop records


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration for the runner and its libraries."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "scenario_context": {
                "()": ScenarioContextFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - [%(scenario)s %(step)s] %(message)s"
            },
            "library": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
                "filters": ["scenario_context"]
            },
            "library": {
                "class": "logging.StreamHandler",
                "formatter": "library",
                "stream": "ext://sys.stderr"
            }
        },
        "loggers": {
            "nodus": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            },
            # The API client logs every request at DEBUG
            "kubernetes": {
                "handlers": ["library"],
                "level": "WARNING",
                "propagate": False
            },
            "urllib3": {
                "handlers": ["library"],
                "level": "WARNING",
                "propagate": False
            }
        },
        "root": {
            "level": "WARNING",
            "handlers": ["library"]
        }
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
