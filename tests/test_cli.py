from __future__ import annotations

import zipfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from orion.cli import EXIT_MODULE_FAILURES, EXIT_STARTUP, app

runner = CliRunner()


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "target" / "Users" / "eve").mkdir(parents=True)
    (tmp_path / "target" / "Users" / "eve" / ".zsh_history").write_text("whoami\n", encoding="utf-8")
    return tmp_path


def _run(workdir: Path, modules: list[str], *extra: str):
    cfg = workdir / "mac.toml"
    cfg.write_text("Modules = [%s]\n" % ", ".join(f'"{m}"' for m in modules), encoding="utf-8")
    return runner.invoke(
        app,
        [
            "run",
            "--config", str(cfg),
            "--mode", "mac",
            "--target", str(workdir / "target"),
            "--output", str(workdir / "out"),
            "--runtime", "clirun",
            "--no-multithreading",
            *extra,
        ],
    )


def test_run_archives_output(workdir: Path):
    result = _run(workdir, ["MacBashModule"])

    assert result.exit_code == 0, result.output
    with zipfile.ZipFile(workdir / "clirun.zip") as zf:
        names = set(zf.namelist())
    assert names == {"out/clirun_MacBashModule.csv", "out/clirun.json"}
    assert not (workdir / "out").exists()


def test_run_reports_module_failures(workdir: Path):
    result = _run(workdir, ["MacBashModule", "MacSystemVersionModule"])

    assert result.exit_code == EXIT_MODULE_FAILURES
    assert (workdir / "clirun.zip").is_file()


def test_run_with_no_known_modules(workdir: Path):
    result = _run(workdir, ["NotAModule"])
    assert result.exit_code == EXIT_STARTUP


def test_run_with_missing_config(workdir: Path):
    result = runner.invoke(app, ["run", "--config", str(workdir / "nope.toml"), "--mode", "mac"])
    assert result.exit_code == EXIT_STARTUP


def test_modules_command():
    result = runner.invoke(app, ["modules"], env={"COLUMNS": "200"})

    assert result.exit_code == 0
    assert "MacDirlistModule" in result.output
    assert "WindowsLivePslistModule" in result.output


def test_check_config(tmp_path: Path):
    cfg = tmp_path / "w.toml"
    cfg.write_text('Modules = ["WindowsDirlistModule", "Bogus"]\n', encoding="utf-8")

    result = runner.invoke(app, ["check-config", str(cfg), "--mode", "windows"])

    assert result.exit_code == 0
    assert "Bogus (not registered)" in result.output


def test_check_config_all_unknown(tmp_path: Path):
    cfg = tmp_path / "w.toml"
    cfg.write_text('Modules = ["Bogus"]\n', encoding="utf-8")

    result = runner.invoke(app, ["check-config", str(cfg), "--mode", "windows"])

    assert result.exit_code == EXIT_STARTUP


def test_run_with_output_in_working_directory(workdir: Path, monkeypatch: pytest.MonkeyPatch):
    cfg = workdir / "mac.toml"
    cfg.write_text('Modules = ["MacBashModule"]\n', encoding="utf-8")
    rundir = workdir / "collect"
    rundir.mkdir()
    monkeypatch.chdir(rundir)

    result = runner.invoke(
        app,
        [
            "run",
            "--config", str(cfg),
            "--mode", "mac",
            "--target", str(workdir / "target"),
            "--output", ".",
            "--runtime", "here",
            "--no-multithreading",
        ],
    )

    assert result.exit_code == 0, result.output
    with zipfile.ZipFile(workdir / "here.zip") as zf:
        assert set(zf.namelist()) == {"collect/here_MacBashModule.csv", "collect/here.json"}
    assert not rundir.exists()
