from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.console import Console
from rich.table import Table

from .config import load_config, load_settings
from .engine import execute
from .errors import ConfigError, ModuleResolutionError, OrionError
from .instance import new_instance
from .registry import default_registry

LOG = logging.getLogger("orion")

EXIT_OK = 0
EXIT_STARTUP = 2
EXIT_MODULE_FAILURES = 3

app = typer.Typer(add_completion=False, help="Orion: forensic artifact collector")


class Mode(str, Enum):
    mac = "mac"
    windows = "windows"


class OutputFormat(str, Enum):
    csv = "csv"
    json = "json"


@app.command("run")
def run_cmd(
    config: Path = typer.Option(..., "--config", "-c", help="Path to the TOML config file"),
    mode: Mode = typer.Option(..., "--mode", "-m", help="Platform variant of the target"),
    target: Path = typer.Option(Path("/"), "--target", "-t", help="Root of the live system or mounted image"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Working output directory (default: $ORION_OUTPUT_DIR)"),
    fmt: OutputFormat = typer.Option(OutputFormat.csv, "--format", "-f", help="Output file format"),
    no_multithreading: bool = typer.Option(False, "--no-multithreading", help="Run modules sequentially in config order"),
    forensic: bool = typer.Option(False, "--forensic", help="Treat the target as an offline image; live modules refuse to run"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    runtime: Optional[str] = typer.Option(None, "--runtime", help="Override the generated runtime identifier"),
):
    """Collect artifacts from TARGET with the modules listed in CONFIG."""
    settings = load_settings()
    try:
        inst = new_instance(
            target_path=target,
            config_path=config,
            mode=mode.value,
            output_path=output or settings.output_dir,
            output_format=fmt.value,
            runtime=runtime,
            log_level=log_level or settings.log_level,
            no_multithreading=no_multithreading,
            forensic_mode=forensic,
        )
    except OrionError as e:
        print(f"[red]Startup failed:[/red] {e}")
        raise typer.Exit(code=EXIT_STARTUP)

    LOG.info("Runtime %s: target=%s mode=%s forensic=%s", inst.runtime, inst.target_path, inst.mode, inst.forensic_mode)
    try:
        summary = execute(inst)
    except (ConfigError, ModuleResolutionError) as e:
        LOG.error("Startup failed: %s", e)
        inst.close_logger()
        raise typer.Exit(code=EXIT_STARTUP)

    table = Table(title=f"Run {inst.runtime}")
    table.add_column("Module")
    table.add_column("Status")
    table.add_column("Elapsed", justify="right")
    table.add_column("Error")
    for r in summary.results:
        status = "[green]ok[/green]" if r.ok else "[red]failed[/red]"
        table.add_row(r.name, status, f"{r.elapsed:.2f}s", "" if r.error is None else str(r.error))
    Console().print(table)
    if summary.archive is not None:
        print(f"Archive: {summary.archive.archive_path}")
    raise typer.Exit(code=EXIT_OK if summary.failed == 0 else EXIT_MODULE_FAILURES)


@app.command("modules")
def modules_cmd():
    """List the registered artifact modules."""
    registry = default_registry()
    table = Table(title="Registered modules")
    table.add_column("Name")
    table.add_column("Mode")
    table.add_column("Live only")
    table.add_column("Description")
    for name in registry.names():
        mod = registry.get(name)
        table.add_row(mod.name, mod.mode, "yes" if mod.live_only else "", mod.description)
    Console().print(table)


@app.command("check-config")
def check_config_cmd(
    config: Path = typer.Argument(..., help="Path to the TOML config file"),
    mode: Mode = typer.Option(..., "--mode", "-m"),
):
    """Validate a config file and show which of its modules are registered."""
    try:
        conf = load_config(config, mode.value)
    except ConfigError as e:
        print(f"[red]Invalid config:[/red] {e}")
        raise typer.Exit(code=EXIT_STARTUP)

    registry = default_registry()
    unknown = 0
    for name in conf.modules():
        if name in registry:
            print(f"  [green]✓[/green] {name}")
        else:
            unknown += 1
            print(f"  [red]✗[/red] {name} (not registered)")
    print(
        f"forensic_mode={conf.forensic_mode()} verbose={conf.verbose()} "
        f"md5={conf.do_hash_md5()} sha256={conf.do_hash_sha256()} hash_size_limit_bytes={conf.hash_size_limit_bytes()}"
    )
    if unknown and unknown == len(conf.modules()):
        raise typer.Exit(code=EXIT_STARTUP)


def main():
    app()
