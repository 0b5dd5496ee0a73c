from __future__ import annotations

import logging
import os
import signal
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from .archive import ArchiveResult, archive, safe_abort
from .errors import ConfigError, ModuleNotFoundInRegistry, ModuleResolutionError
from .instance import Instance
from .logging_utils import flush_logging
from .registry import ModuleRegistry, default_registry

LOG = logging.getLogger("orion.engine")

ABORT_EXIT_CODE = 130


class RunState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTING = "aborting"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class RunResult:
    name: str
    ok: bool
    elapsed: float
    error: BaseException | None = None


@dataclass
class RunSummary:
    results: list[RunResult] = field(default_factory=list)
    elapsed: float = 0.0
    archive: ArchiveResult | None = None

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    def failures(self) -> list[RunResult]:
        return [r for r in self.results if not r.ok]


class BestEffortAbort:
    """
    Single coordinated abort path for an interrupt during a run.

    Running modules are not cancelled: the abort archive captures only the
    files already on disk and the process exits with ABORT_EXIT_CODE,
    abandoning worker threads. `cancelled` is set first, so a cooperative
    variant can pass it to modules and wait instead.
    """

    def __init__(
        self,
        inst: Instance,
        *,
        dest_dir: Path | None = None,
        exit_func: Callable[[int], object] = os._exit,
    ):
        self.inst = inst
        self.dest_dir = dest_dir
        self.exit_func = exit_func
        self.cancelled = threading.Event()
        self.result: ArchiveResult | None = None
        self._lock = threading.Lock()
        self._triggered = False
        self._previous_handler = None
        self._installed = False
        self._on_state: Callable[[RunState], None] | None = None

    def bind(self, on_state: Callable[[RunState], None]) -> None:
        self._on_state = on_state

    def _notify(self, state: RunState) -> None:
        if self._on_state is not None:
            self._on_state(state)

    def install(self) -> bool:
        if threading.current_thread() is not threading.main_thread():
            LOG.debug("Not on the main thread; interrupt handler not installed")
            return False
        self._previous_handler = signal.signal(signal.SIGINT, self._handle_signal)
        self._installed = True
        return True

    def uninstall(self) -> None:
        if self._installed:
            signal.signal(signal.SIGINT, self._previous_handler)
            self._installed = False

    def _handle_signal(self, signum, _frame) -> None:
        LOG.warning("Got %s signal. Attempting safe abort...", signal.Signals(signum).name)
        self.trigger()

    def trigger(self) -> None:
        with self._lock:
            if self._triggered:
                return
            self._triggered = True
        self.cancelled.set()
        self._notify(RunState.ABORTING)
        try:
            self.result = safe_abort(self.inst, self.dest_dir)
        except OSError as e:
            LOG.error("Failed to create abort archive: %s", e)
        self._notify(RunState.TERMINATED)
        flush_logging()
        self.exit_func(ABORT_EXIT_CODE)


def run_module(name: str, inst: Instance, registry: ModuleRegistry) -> RunResult:
    """Resolve and start one module; failures become a RunResult, never an exception."""
    LOG.debug("Starting [%s] module.", name)
    started = time.monotonic()
    try:
        mod = registry.get(name)
        mod.start(inst)
    except ModuleNotFoundInRegistry as e:
        elapsed = time.monotonic() - started
        LOG.error("Exiting [%s] module with errors. Total time: %.3fs: %s", name, elapsed, e)
        return RunResult(name=name, ok=False, elapsed=elapsed, error=e)
    except Exception as e:
        elapsed = time.monotonic() - started
        LOG.error("Exiting [%s] module with errors. Total time: %.3fs: %s", name, elapsed, e, exc_info=True)
        return RunResult(name=name, ok=False, elapsed=elapsed, error=e)
    elapsed = time.monotonic() - started
    LOG.info("Finished [%s] module. Total time: %.3fs", name, elapsed)
    return RunResult(name=name, ok=True, elapsed=elapsed)


class Scheduler:
    """Runs the configured modules once, then archives their output."""

    def __init__(
        self,
        inst: Instance,
        registry: ModuleRegistry | None = None,
        abort: BestEffortAbort | None = None,
        *,
        archive_dir: Path | None = None,
    ):
        self.inst = inst
        self.registry = registry or default_registry()
        self.abort = abort or BestEffortAbort(inst, dest_dir=archive_dir)
        self.archive_dir = archive_dir
        self.state = RunState.IDLE
        self._state_lock = threading.RLock()
        self.abort.bind(self._transition)

    def _transition(self, new: RunState) -> None:
        with self._state_lock:
            LOG.debug("Run state %s -> %s", self.state.value, new.value)
            self.state = new

    def execute_modules(self, names: list[str]) -> RunSummary:
        if self.state is not RunState.IDLE:
            raise RuntimeError("a scheduler runs at most once")
        if not names:
            raise ConfigError("no modules configured to execute")
        resolvable = self.registry.resolvable(names)
        if not resolvable:
            raise ModuleResolutionError(f"none of the configured modules are registered: {names}")
        for missing in sorted(set(names) - set(resolvable)):
            LOG.error("Module %r is not registered and will be recorded as failed", missing)

        self._transition(RunState.DISPATCHING)
        LOG.debug("[%d] modules will execute", len(names))
        installed = self.abort.install()
        started = time.monotonic()
        try:
            self._transition(RunState.RUNNING)
            if self.inst.no_multithreading:
                results = [run_module(name, self.inst, self.registry) for name in names]
            else:
                results = self._run_concurrent(names)
        finally:
            if installed:
                self.abort.uninstall()
        summary = RunSummary(results=results, elapsed=time.monotonic() - started)
        self._transition(RunState.COMPLETED)
        LOG.info(
            "Finished all %d modules in %.3fs (%d succeeded, %d failed)",
            summary.attempted,
            summary.elapsed,
            summary.succeeded,
            summary.failed,
        )
        for r in summary.failures():
            LOG.error("Module %s failed after %.3fs: %s", r.name, r.elapsed, r.error)

        try:
            summary.archive = archive(self.inst, self.archive_dir)
        except OSError as e:
            LOG.error("Failed to create output archive: %s", e)
        return summary

    def _run_concurrent(self, names: list[str]) -> list[RunResult]:
        executor = ThreadPoolExecutor(max_workers=len(names), thread_name_prefix="orion-module")
        try:
            futures = [executor.submit(run_module, name, self.inst, self.registry) for name in names]
            LOG.debug("[%d/%d] modules have been sent to worker threads", len(futures), len(names))
            wait(futures)
            LOG.debug("module threads completed")
            return [f.result() for f in futures]
        finally:
            executor.shutdown(wait=False)


def execute(
    inst: Instance,
    registry: ModuleRegistry | None = None,
    abort: BestEffortAbort | None = None,
    *,
    archive_dir: Path | None = None,
) -> RunSummary:
    """Run every module named in the instance config; should only be called once per run."""
    return Scheduler(inst, registry, abort, archive_dir=archive_dir).execute_modules(inst.modules())


def execute_modules(
    names: list[str],
    inst: Instance,
    registry: ModuleRegistry | None = None,
    abort: BestEffortAbort | None = None,
    *,
    archive_dir: Path | None = None,
) -> RunSummary:
    return Scheduler(inst, registry, abort, archive_dir=archive_dir).execute_modules(names)
