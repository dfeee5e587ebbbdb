"""
NITRALINK Structured Logging Configuration
Logging setup shared by the calling process and the analysis worker.

Modules log through structlog (logger.info("IDW complete", grid_points=...)).
The last structlog processor hands every event to loguru, which owns the
sinks: coloured text on stderr in development, one JSON document per line
on stdout otherwise. Key/value context travels as loguru ``extra``.
"""
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from loguru import logger

DEV_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[logger]}</cyan> | "
    "<level>{message}</level> | "
    "<magenta>extras: {extra}</magenta>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[logger]} | {message} | {extra}"


def _to_loguru(_, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Final structlog processor: emit the event as a loguru record."""
    message = str(event_dict.pop("event", ""))
    level = str(event_dict.pop("level", method_name)).upper()
    exception = event_dict.pop("exception", None)
    if exception:
        message = f"{message}\n{exception}"
    if "logger_name" in event_dict:
        event_dict["logger"] = event_dict.pop("logger_name")

    logger.bind(**event_dict).log(level, message)
    raise structlog.DropEvent


def setup_logging(environment: str = "development", log_dir: Optional[Path] = None) -> None:
    """
    Configure structured logging for NITRALINK.

    Args:
        environment: "development" for coloured stderr output; anything
            else ("production", "testing") writes JSON lines to stdout
        log_dir: Optional directory for rotating log files. Nothing is
            written to disk when omitted.
    """
    logger.remove()
    logger.configure(extra={"logger": "nitralink"})

    if environment == "development":
        logger.add(
            sys.stderr,
            format=DEV_FORMAT,
            level="DEBUG",
            colorize=True,
            backtrace=True,
            diagnose=True,
        )
        if log_dir is not None:
            log_file = Path(log_dir) / "nitralink_dev.log"
            log_file.parent.mkdir(parents=True, exist_ok=True)
            logger.add(log_file, format=FILE_FORMAT, level="INFO", rotation="10 MB", retention="30 days")

    else:
        logger.add(sys.stdout, format=FILE_FORMAT, level="INFO", serialize=True)
        if log_dir is not None:
            error_log_file = Path(log_dir) / "nitralink_errors.log"
            error_log_file.parent.mkdir(parents=True, exist_ok=True)
            logger.add(error_log_file, format=FILE_FORMAT, level="ERROR", rotation="50 MB", retention="90 days")

    # Level filtering is left to the loguru sinks
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _to_loguru,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        logger_factory=structlog.ReturnLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logger.info("Logging system initialized", environment=environment)


def get_logger(name: str) -> Any:
    """
    Get a structured logger for a module.

    Args:
        name: Typically __name__ of the calling module; it is bound as the
            ``logger`` key and shows up in every record
    """
    return structlog.get_logger(logger_name=name)
