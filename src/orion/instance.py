from __future__ import annotations

import socket
from dataclasses import dataclass
from pathlib import Path

from .config import SUPPORTED_FORMATS, Config, load_config
from .errors import ConfigError, OutputDirectoryError, UnsupportedFormatError
from .logging_utils import close_file_logging, configure_logging
from .time_utils import compact_utc_stamp


@dataclass(frozen=True)
class Instance:
    """
    Read-only run context shared by every module.

    Created once before scheduling and never mutated, so concurrently
    running modules may read it without locking.
    """

    target_path: Path
    output_path: Path
    output_format: str
    runtime: str
    mode: str
    config: Config
    no_multithreading: bool = False
    forensic_mode: bool = False

    def modules(self) -> list[str]:
        return self.config.modules()

    def close_logger(self) -> None:
        close_file_logging()


def new_runtime_id(mode: str) -> str:
    host = socket.gethostname().split(".")[0] or "host"
    return f"orion_{host}_{mode}_{compact_utc_stamp()}"


def new_instance(
    *,
    target_path: Path,
    config_path: Path,
    mode: str,
    output_path: Path,
    output_format: str = "csv",
    runtime: str | None = None,
    log_level: str | None = None,
    no_multithreading: bool = False,
    forensic_mode: bool = False,
) -> Instance:
    """Build the run context; should only be called once per run."""
    if output_format not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(f"cannot write output of type {output_format!r}")
    runtime = runtime or new_runtime_id(mode)
    output_path = Path(output_path).resolve()
    try:
        output_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputDirectoryError(f"cannot create output directory {output_path}: {e}") from e

    configure_logging(log_level, runtime, output_path)
    try:
        config = load_config(config_path, mode)
    except ConfigError:
        close_file_logging()
        raise

    return Instance(
        target_path=Path(target_path),
        output_path=output_path,
        output_format=output_format,
        runtime=runtime,
        mode=mode,
        config=config,
        no_multithreading=no_multithreading,
        forensic_mode=forensic_mode or config.forensic_mode(),
    )
