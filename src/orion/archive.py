from __future__ import annotations

import errno
import logging
import shutil
import time
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from .logging_utils import flush_logging

if TYPE_CHECKING:
    from .instance import Instance

LOG = logging.getLogger("orion.archive")

REMOVE_RETRY_DELAY_SECONDS = 5.0


@dataclass
class ArchiveResult:
    archive_path: Path
    written: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    cleaned: bool = False


def archive_name(runtime: str, *, aborted: bool = False) -> str:
    return f"{runtime}_ABORT.zip" if aborted else f"{runtime}.zip"


def _output_files(output_dir: Path) -> list[Path]:
    if not output_dir.is_dir():
        return []
    return sorted(p for p in output_dir.rglob("*") if not p.is_dir())


def package_outputs(output_dir: Path, archive_path: Path, *, log_level: int = logging.DEBUG) -> ArchiveResult:
    """
    Deflate every file under output_dir into archive_path.

    Entries keep their on-disk names, prefixed by the output directory name.
    A file that cannot be read is logged and left out; the rest are still
    packaged.
    """
    output_dir = Path(output_dir).resolve()
    result = ArchiveResult(archive_path=Path(archive_path))
    files = _output_files(output_dir)
    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in files:
            arcname = (Path(output_dir.name) / path.relative_to(output_dir)).as_posix()
            try:
                zf.write(path, arcname=arcname)
            except OSError as e:
                LOG.error("Failed to write %s to archive: %s", path, e)
                result.failed.append(str(path))
                continue
            result.written.append(arcname)
            LOG.log(log_level, "Wrote %s to archive", arcname)
    return result


def _in_use(err: OSError) -> bool:
    return getattr(err, "winerror", None) == 32 or err.errno == errno.EBUSY or "used by another" in str(err)


def remove_output_dir(output_dir: Path, *, retry_delay: float = REMOVE_RETRY_DELAY_SECONDS) -> bool:
    try:
        shutil.rmtree(output_dir)
        return True
    except OSError as e:
        LOG.error("Failed to remove output folder %r: %s", str(output_dir), e)
        if not _in_use(e):
            return False
        LOG.warning("Waiting %.0f seconds before attempting again", retry_delay)
    time.sleep(retry_delay)
    try:
        shutil.rmtree(output_dir)
        return True
    except OSError as e:
        LOG.error("Still failed to remove output folder %r: %s", str(output_dir), e)
        return False


def _inside(path: Path, directory: Path) -> bool:
    return path.resolve().is_relative_to(directory.resolve())


def archive_destination(output_dir: Path, dest_dir: Path | None = None) -> Path:
    """
    Directory the archive is written to: dest_dir, else the working directory.

    The output directory is removed after packaging, so a destination inside
    it is replaced by the output directory's parent.
    """
    dest = Path(dest_dir) if dest_dir is not None else Path.cwd()
    output_dir = Path(output_dir).resolve()
    if _inside(dest, output_dir):
        LOG.warning("Archive destination %s is inside the output folder; writing to %s instead", dest, output_dir.parent)
        dest = output_dir.parent
    return dest


def archive(inst: "Instance", dest_dir: Path | None = None) -> ArchiveResult:
    """Package the finished run into <runtime>.zip and remove the output directory."""
    output_dir = inst.output_path.resolve()
    archive_path = archive_destination(output_dir, dest_dir) / archive_name(inst.runtime)
    flush_logging()
    result = package_outputs(output_dir, archive_path)
    LOG.info("Packing complete: %s (%d files, %d failed)", archive_path, len(result.written), len(result.failed))

    if _inside(archive_path, output_dir):
        # Only reachable when the output directory is the filesystem root.
        LOG.error("Archive %s is inside output folder %s; not removing it", archive_path, output_dir)
        inst.close_logger()
        return result

    # The log file lives in the output directory; release it before removal.
    inst.close_logger()
    result.cleaned = remove_output_dir(output_dir)
    return result


def safe_abort(inst: "Instance", dest_dir: Path | None = None) -> ArchiveResult:
    """
    Package whatever output exists right now into <runtime>_ABORT.zip.

    Modules still running are not waited for, so their output may be
    partial or missing. The output directory is left in place.
    """
    output_dir = inst.output_path.resolve()
    LOG.warning("DO NOT INTERRUPT - Packaging files before terminating...")
    LOG.warning("Output from modules that have not finished is NOT saved")
    archive_path = archive_destination(output_dir, dest_dir) / archive_name(inst.runtime, aborted=True)
    flush_logging()
    result = package_outputs(output_dir, archive_path, log_level=logging.WARNING)
    LOG.warning("Termination packaging complete: %s", archive_path)
    return result
