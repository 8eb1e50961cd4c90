"""Centralized logging configuration using Loguru with Pino-compatible output.

Usage:
    from planauditor.utils.logging import logger
    logger.info("Message")

    # Per-run context travels with the bound logger, never with a global.
    log = bind_run(analysis_id="tf-analysis-...", tenant_id="acme")
    engine.analyze(plan, options, log=log)

Environment Variables:
    PLANAUDITOR_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
    PLANAUDITOR_LOG_JSON: 0|1 (default: 0, human-readable)
    PLANAUDITOR_LOG_FILE: path to NDJSON log file (optional)
    PLANAUDITOR_REQUEST_ID: correlation ID for cross-service tracing
"""

import json
import os
import sys
import uuid
from loguru import logger

logger.remove()

PINO_LEVELS = {
    "TRACE": 10,
    "DEBUG": 20,
    "INFO": 30,
    "SUCCESS": 30,
    "WARNING": 40,
    "ERROR": 50,
    "CRITICAL": 60,
}

_log_level = os.environ.get("PLANAUDITOR_LOG_LEVEL", "INFO").upper()
_json_mode = os.environ.get("PLANAUDITOR_LOG_JSON", "0") == "1"
_log_file = os.environ.get("PLANAUDITOR_LOG_FILE")
_request_id = os.environ.get("PLANAUDITOR_REQUEST_ID") or str(uuid.uuid4())


def _to_pino(record) -> dict:
    pino_log = {
        "level": PINO_LEVELS.get(record["level"].name, 30),
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "pid": record["process"].id,
        "request_id": record["extra"].get("request_id", _request_id),
    }

    for key, value in record["extra"].items():
        if key != "request_id":
            pino_log[key] = value

    if record["exception"]:
        pino_log["err"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else "Error",
            "message": str(record["exception"].value) if record["exception"].value else "",
        }
    return pino_log


def pino_compatible_sink(message):
    """Format log records as Pino-compatible NDJSON on stderr.

    {"level":30,"time":1715629847123,"msg":"...","pid":12345,"request_id":"..."}
    """
    # stdout carries command output (--json, --format json). Never call logger.* here: it recurses.
    sys.stderr.write(json.dumps(_to_pino(message.record), default=str) + "\n")
    sys.stderr.flush()


_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

logger.level("DEBUG", color="<blue>")
logger.level("INFO", color="<white>")
logger.level("WARNING", color="<yellow>")
logger.level("ERROR", color="<red>")
logger.level("CRITICAL", color="<red><bold>")

if _json_mode:
    logger.add(pino_compatible_sink, level=_log_level, colorize=False)
else:
    logger.add(
        sys.stderr,
        level=_log_level,
        format=_human_format,
        colorize=None,
    )

if _log_file:

    def _file_pino_sink(message):
        """Append Pino-format JSON to the configured log file."""
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(_to_pino(message.record), default=str) + "\n")

    logger.add(_file_pino_sink, level="DEBUG")


def bind_run(**context):
    """Return a logger carrying per-run context fields.

    The returned logger is a new object; binding never mutates the shared
    module logger, so concurrent runs keep their context apart.
    """
    return logger.bind(request_id=_request_id, **context)


__all__ = [
    "logger",
    "bind_run",
]
