"""Logging configuration and the run-record sink for tianyi-auto."""

import logging

import colorlog

from .outcome import RunRecord, Success, TransientError

log = logging.getLogger("tianyi-auto")

_FILE_LOG_FMT = "%(asctime)s [%(levelname)s] %(message)s"
_FILE_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(debug: bool = False, log_file: str | None = None) -> None:
    """
    Configure the package logger.

    Console output goes through colorlog; ``log_file`` additionally captures
    everything at DEBUG level without colour codes.
    """
    level = logging.DEBUG if debug else logging.INFO
    log.setLevel(logging.DEBUG if log_file else level)
    log.handlers.clear()

    handler = colorlog.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(asctime)s [%(levelname)s]%(reset)s %(message)s",
        datefmt=_FILE_LOG_DATEFMT,
        log_colors={
            "DEBUG":    "cyan",
            "INFO":     "green",
            "WARNING":  "yellow",
            "ERROR":    "red",
            "CRITICAL": "bold_red",
        },
    ))
    log.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(_FILE_LOG_FMT, datefmt=_FILE_LOG_DATEFMT)
        )
        log.addHandler(file_handler)

    if debug:
        logging.getLogger("urllib3").setLevel(logging.DEBUG)


def record_level(record: RunRecord) -> int:
    if isinstance(record.outcome, Success):
        return logging.INFO
    # Retries ran out on a network failure
    if isinstance(record.outcome, TransientError):
        return logging.ERROR
    return logging.WARNING


def emit_run_record(record: RunRecord) -> None:
    """Default sink: one log line per tick, structured fields in ``extra``."""
    log.log(
        record_level(record),
        "Run scheduled for %s started %s: %s (retries=%d)",
        record.scheduled_at.isoformat(timespec="seconds"),
        record.started_at.isoformat(timespec="seconds"),
        record.outcome.describe(),
        record.retry_count,
        extra={"run_record": record.as_dict()},
    )
