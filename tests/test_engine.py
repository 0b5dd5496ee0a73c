from __future__ import annotations

import signal
import threading
import zipfile
from pathlib import Path

import pytest

from orion.engine import ABORT_EXIT_CODE, BestEffortAbort, RunState, Scheduler, execute, execute_modules, run_module
from orion.errors import ConfigError, ModuleNotFoundInRegistry, ModuleResolutionError
from orion.modules.base import OrionModule
from orion.registry import ModuleRegistry


class _TestModule(OrionModule):
    def __init__(self, name: str, action=None):
        self._name = name
        self._action = action

    @property
    def name(self) -> str:
        return self._name

    @property
    def mode(self) -> str:
        return "mac"

    @property
    def description(self) -> str:
        return "test module"

    def run(self, inst) -> None:
        if self._action is not None:
            self._action(self, inst)
        else:
            self.writer(inst).write_output(["value"], [[self._name]])


def _registry(**actions) -> ModuleRegistry:
    reg = ModuleRegistry()
    for name, action in actions.items():
        reg.register(name, lambda name=name, action=action: _TestModule(name, action))
    return reg.freeze()


def _fail(mod, inst):
    raise RuntimeError(f"{mod.name} exploded")


def test_partial_failure_still_archives(make_instance, tmp_path: Path):
    inst = make_instance({"Modules": ["Good", "Bad", "Ghost"]})
    reg = _registry(Good=None, Bad=_fail)
    archives = tmp_path / "archives"
    archives.mkdir()

    summary = execute(inst, reg, archive_dir=archives)

    assert summary.attempted == 3
    assert summary.succeeded == 1
    assert summary.failed == 2
    failed = {r.name: r.error for r in summary.failures()}
    assert isinstance(failed["Bad"], RuntimeError)
    assert isinstance(failed["Ghost"], ModuleNotFoundInRegistry)

    zip_path = archives / "orion_test.zip"
    assert summary.archive is not None
    assert summary.archive.archive_path == zip_path
    with zipfile.ZipFile(zip_path) as zf:
        assert zf.namelist() == ["out/orion_test_Good.csv"]
    assert summary.archive.cleaned
    assert not inst.output_path.exists()


def test_sequential_mode_runs_in_config_order(make_instance, tmp_path: Path):
    order: list[str] = []

    def record(mod, inst):
        order.append(mod.name)

    inst = make_instance({"Modules": ["C", "A", "B"]}, no_multithreading=True)
    reg = _registry(A=record, B=record, C=record)

    summary = execute(inst, reg, archive_dir=tmp_path)

    assert order == ["C", "A", "B"]
    assert [r.name for r in summary.results] == ["C", "A", "B"]
    assert all(r.ok for r in summary.results)


def test_concurrent_mode_runs_every_module(make_instance, tmp_path: Path):
    names = [f"M{i}" for i in range(6)]
    inst = make_instance({"Modules": names})
    reg = _registry(**{n: None for n in names})

    summary = execute(inst, reg, archive_dir=tmp_path)

    assert summary.succeeded == 6
    with zipfile.ZipFile(tmp_path / "orion_test.zip") as zf:
        assert sorted(zf.namelist()) == sorted(f"out/orion_test_{n}.csv" for n in names)


def test_no_modules_configured(make_instance, tmp_path: Path):
    inst = make_instance({"Modules": []})
    with pytest.raises(ConfigError):
        execute(inst, _registry(A=None), archive_dir=tmp_path)


def test_nothing_resolvable(make_instance, tmp_path: Path):
    inst = make_instance()
    with pytest.raises(ModuleResolutionError):
        execute_modules(["Ghost", "Phantom"], inst, _registry(A=None), archive_dir=tmp_path)


def test_scheduler_runs_once(make_instance, tmp_path: Path):
    inst = make_instance({"Modules": ["A"]})
    scheduler = Scheduler(inst, _registry(A=None), archive_dir=tmp_path)
    scheduler.execute_modules(["A"])

    assert scheduler.state is RunState.COMPLETED
    with pytest.raises(RuntimeError):
        scheduler.execute_modules(["A"])


def test_run_module_reports_mode_mismatch(make_instance):
    inst = make_instance(mode="windows")
    result = run_module("A", inst, _registry(A=None))

    assert not result.ok
    assert "windows" in str(result.error)


def test_abort_packages_only_finished_output(make_instance, tmp_path: Path):
    b_started = threading.Event()
    release_b = threading.Event()

    def slow(mod, inst):
        b_started.set()
        release_b.wait(timeout=10)

    inst = make_instance({"Modules": ["A", "B"]}, no_multithreading=True)
    reg = _registry(A=None, B=slow)
    archives = tmp_path / "archives"
    archives.mkdir()
    exits: list[int] = []
    abort = BestEffortAbort(inst, dest_dir=archives, exit_func=exits.append)
    scheduler = Scheduler(inst, reg, abort, archive_dir=archives)

    worker = threading.Thread(target=scheduler.execute_modules, args=(["A", "B"],))
    worker.start()
    try:
        assert b_started.wait(timeout=10)
        abort.trigger()
        abort.trigger()

        assert exits == [ABORT_EXIT_CODE]
        assert abort.cancelled.is_set()
        assert scheduler.state is RunState.TERMINATED
        with zipfile.ZipFile(archives / "orion_test_ABORT.zip") as zf:
            assert zf.namelist() == ["out/orion_test_A.csv"]
        assert inst.output_path.exists()
    finally:
        release_b.set()
        worker.join(timeout=10)


def test_sigint_during_run_writes_abort_archive(make_instance, tmp_path: Path):
    def interrupt(mod, inst):
        signal.raise_signal(signal.SIGINT)

    inst = make_instance({"Modules": ["A", "B"]}, no_multithreading=True)
    reg = _registry(A=None, B=interrupt)
    archives = tmp_path / "archives"
    archives.mkdir()
    exits: list[int] = []
    abort = BestEffortAbort(inst, dest_dir=archives, exit_func=exits.append)
    previous = signal.getsignal(signal.SIGINT)

    summary = Scheduler(inst, reg, abort, archive_dir=archives).execute_modules(["A", "B"])

    assert exits == [ABORT_EXIT_CODE]
    assert abort.cancelled.is_set()
    with zipfile.ZipFile(archives / "orion_test_ABORT.zip") as zf:
        assert zf.namelist() == ["out/orion_test_A.csv"]
    assert signal.getsignal(signal.SIGINT) is previous
    assert summary.attempted == 2


def test_install_is_skipped_off_the_main_thread(make_instance):
    abort = BestEffortAbort(make_instance(), exit_func=lambda code: None)
    installed: list[bool] = []

    worker = threading.Thread(target=lambda: installed.append(abort.install()))
    worker.start()
    worker.join(timeout=10)

    assert installed == [False]
    abort.uninstall()
