from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from orion.errors import ConfigError, UnsupportedFormatError
from orion.instance import new_instance, new_runtime_id


def _config(tmp_path: Path, body: str = 'Modules = ["MacBashModule"]\n') -> Path:
    p = tmp_path / "mac.toml"
    p.write_text(body, encoding="utf-8")
    return p


def test_new_runtime_id():
    rid = new_runtime_id("mac")
    assert rid.startswith("orion_")
    assert "_mac_" in rid


def test_new_instance_sets_up_json_log(tmp_path: Path):
    inst = new_instance(
        target_path=tmp_path,
        config_path=_config(tmp_path),
        mode="mac",
        output_path=tmp_path / "out",
        runtime="run1",
        log_level="DEBUG",
    )
    logging.getLogger("orion.test").info("hello %s", "world")
    inst.close_logger()

    assert inst.modules() == ["MacBashModule"]
    assert inst.forensic_mode is False
    lines = (tmp_path / "out" / "run1.json").read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    hello = [r for r in records if r["message"] == "hello world"]
    assert hello and hello[0]["level"] == "INFO"
    assert hello[0]["logger"] == "orion.test"


def test_forensic_mode_from_config(tmp_path: Path):
    inst = new_instance(
        target_path=tmp_path,
        config_path=_config(tmp_path, "ForensicMode = true\n"),
        mode="mac",
        output_path=tmp_path / "out",
        runtime="run1",
    )
    assert inst.forensic_mode is True


def test_unsupported_format(tmp_path: Path):
    with pytest.raises(UnsupportedFormatError):
        new_instance(
            target_path=tmp_path,
            config_path=_config(tmp_path),
            mode="mac",
            output_path=tmp_path / "out",
            output_format="xlsx",
        )


def test_missing_config(tmp_path: Path):
    with pytest.raises(ConfigError):
        new_instance(target_path=tmp_path, config_path=tmp_path / "nope.toml", mode="mac", output_path=tmp_path / "out")
