"""Structured logging configuration using loguru.

Two sinks are installed:
- a colorized, timestamped console sink for operators watching a run
- a JSON-lines file sink for later inspection of scheduled runs

The log directory is validated for writability before any sink is added
so a misconfigured host fails at startup instead of losing run history.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from config.settings import GlobalConfig
from src.exceptions import LoggingInitializationError


def _json_serializer(record: dict[str, Any]) -> str:
    """Render a loguru record as a single JSON line.

    Args:
        record: Loguru record dictionary.

    Returns:
        JSON-formatted string terminated by a newline.
    """
    subset = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    if record["exception"] is not None:
        subset["exception"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else None,
            "value": str(record["exception"].value) if record["exception"].value else None,
        }

    context = {k: v for k, v in record["extra"].items() if k != "serialized"}
    if context:
        subset["context"] = context

    return json.dumps(subset, default=str) + "\n"


def _attach_serialized(record: dict[str, Any]) -> bool:
    record["extra"]["serialized"] = _json_serializer(record)
    return True


def _validate_log_directory(log_dir: Path) -> None:
    """Ensure the log directory exists and accepts writes.

    Raises:
        LoggingInitializationError: If creation or the write probe fails.
    """
    try:
        log_dir.mkdir(parents=True, exist_ok=True)

        probe = log_dir / ".write_test"
        probe.write_text("write_test")
        probe.unlink()

    except PermissionError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir),
            reason=f"Permission denied: {exc}",
        ) from exc
    except OSError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir),
            reason=f"OS error during directory validation: {exc}",
        ) from exc


def configure_logging(config: GlobalConfig) -> None:
    """Initialize console and JSON file logging.

    Call once during bootstrap, before the pipeline starts.

    Args:
        config: Validated GlobalConfig instance.

    Raises:
        LoggingInitializationError: If log directory validation fails.
    """
    logger.remove()

    _validate_log_directory(config.log_dir)

    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[module]}</cyan> | "
        "<level>{message}</level>"
    )

    logger.configure(extra={"module": "root"})
    logger.add(
        sys.stderr,
        format=console_format,
        level=config.log_level,
        colorize=True,
        backtrace=config.debug,
        diagnose=config.debug,
    )

    logger.add(
        str(config.log_dir / "preopen_{time:YYYY-MM-DD}.json"),
        format="{extra[serialized]}",
        level=config.log_level,
        rotation=config.log_rotation,
        retention=config.log_retention,
        compression="gz",
        filter=_attach_serialized,
    )

    logger.info(
        "Logging infrastructure initialized",
        app_name=config.app_name,
        environment=config.environment,
        log_level=config.log_level,
        log_dir=str(config.log_dir),
    )


def get_logger(name: str) -> "logger":
    """Return the shared logger bound with a module name.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("Download saved", path="downloads/x.csv")
    """
    return logger.bind(module=name)
