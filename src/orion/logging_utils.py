from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from rich.logging import RichHandler

from .errors import LoggingSetupError

LOG = logging.getLogger("orion")

_file_handler: logging.FileHandler | None = None


class JSONLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "caller": f"{record.filename}:{record.lineno}",
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, sort_keys=True)


def resolve_level(level: str | None = None) -> int:
    chosen = (level or os.environ.get("ORION_LOG_LEVEL") or "INFO").upper()
    return getattr(logging, chosen, logging.INFO)


def configure_logging(level: str | None, runtime: str, output_dir: Path) -> Path:
    """
    Send the "orion" logger hierarchy to <output_dir>/<runtime>.json and the console.

    The log file lives inside the output directory so it is packaged with
    the module results.
    """
    global _file_handler

    chosen = resolve_level(level)
    log_path = output_dir / f"{runtime}.json"
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as e:
        raise LoggingSetupError(f"cannot create log file {log_path}: {e}") from e
    file_handler.setFormatter(JSONLineFormatter())

    close_file_logging()
    for h in list(LOG.handlers):
        if isinstance(h, RichHandler):
            LOG.removeHandler(h)

    console = RichHandler(show_path=False, rich_tracebacks=False)
    console.setFormatter(logging.Formatter("%(name)s %(message)s"))
    LOG.addHandler(console)
    LOG.addHandler(file_handler)
    LOG.setLevel(chosen)
    LOG.propagate = False
    _file_handler = file_handler
    LOG.debug("Logger established, writing to %s", log_path)
    return log_path


def close_file_logging() -> None:
    global _file_handler
    if _file_handler is None:
        return
    _file_handler.flush()
    LOG.removeHandler(_file_handler)
    _file_handler.close()
    _file_handler = None


def flush_logging() -> None:
    for h in LOG.handlers:
        h.flush()
