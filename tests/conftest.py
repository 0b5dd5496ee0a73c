from __future__ import annotations

import logging
from pathlib import Path

import pytest

from orion.config import parse_config
from orion.instance import Instance
from orion.logging_utils import close_file_logging


@pytest.fixture(autouse=True)
def _reset_orion_logging():
    yield
    close_file_logging()
    log = logging.getLogger("orion")
    for h in list(log.handlers):
        log.removeHandler(h)
    log.propagate = True
    log.setLevel(logging.NOTSET)


@pytest.fixture
def make_instance(tmp_path: Path):
    """Build an Instance around tmp_path without touching global logging."""

    def _make(
        raw: dict | None = None,
        *,
        mode: str = "mac",
        target: Path | None = None,
        output_format: str = "csv",
        runtime: str = "orion_test",
        forensic_mode: bool = False,
        no_multithreading: bool = False,
    ) -> Instance:
        out = tmp_path / "out"
        out.mkdir(exist_ok=True)
        target = target if target is not None else tmp_path / "target"
        target.mkdir(parents=True, exist_ok=True)
        conf = parse_config(raw or {}, mode=mode)
        return Instance(
            target_path=target,
            output_path=out,
            output_format=output_format,
            runtime=runtime,
            mode=mode,
            config=conf,
            no_multithreading=no_multithreading,
            forensic_mode=forensic_mode or conf.forensic_mode(),
        )

    return _make
