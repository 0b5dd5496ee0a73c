from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest

from orion.datawriter import CSVWriter, JSONLinesWriter, OutputWriter, create_writer, output_filename
from orion.errors import UnsupportedFormatError, WriterStateError


def test_output_filename():
    assert output_filename("MacBashModule", "orion_h_mac_1", "csv") == "orion_h_mac_1_MacBashModule.csv"


def test_csv_writer(tmp_path: Path):
    w = create_writer("Mod", "run", "csv", tmp_path / "out")
    assert isinstance(w, CSVWriter)

    w.write_output(["a", "b"], [["1", None], ["x,y", 2]])

    with (tmp_path / "out" / "run_Mod.csv").open(newline="", encoding="utf-8") as f:
        assert list(csv.reader(f)) == [["a", "b"], ["1", ""], ["x,y", "2"]]
    assert w.closed


def test_json_lines_writer(tmp_path: Path):
    w = create_writer("Mod", "run", "json", tmp_path)
    assert isinstance(w, JSONLinesWriter)

    with w:
        w.write_header(["pid", "cmd"])
        w.write_row([1, "launchd"])
        w.write_rows([[2, "bash -l"]])

    lines = (tmp_path / "run_Mod.json").read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [
        {"header": ["pid", "cmd"]},
        {"pid": "1", "cmd": "launchd"},
        {"pid": "2", "cmd": "bash -l"},
    ]


def test_row_before_header(tmp_path: Path):
    with create_writer("Mod", "run", "csv", tmp_path) as w:
        with pytest.raises(WriterStateError):
            w.write_row(["1"])


def test_header_twice(tmp_path: Path):
    with create_writer("Mod", "run", "csv", tmp_path) as w:
        w.write_header(["a"])
        with pytest.raises(WriterStateError):
            w.write_header(["a"])


def test_write_after_close(tmp_path: Path):
    w = create_writer("Mod", "run", "csv", tmp_path)
    w.write_header(["a"])
    w.close()
    w.close()
    with pytest.raises(WriterStateError):
        w.write_row(["1"])



def test_unsupported_format(tmp_path: Path):
    with pytest.raises(UnsupportedFormatError):
        create_writer("Mod", "run", "xlsx", tmp_path)


def test_json_header_only_output_keeps_columns(tmp_path: Path):
    create_writer("Mod", "run", "json", tmp_path).write_output(["mtime", "cmd"], [])

    lines = (tmp_path / "run_Mod.json").read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [{"header": ["mtime", "cmd"]}]


def test_output_writer_is_abstract(tmp_path: Path):
    with pytest.raises(TypeError):
        OutputWriter(tmp_path / "x.out", "Mod", "run")
