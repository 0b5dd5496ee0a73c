from __future__ import annotations

import os
import string
from pathlib import Path
from typing import TYPE_CHECKING

from orion.errors import ScanRootError
from orion.modules.base import OrionModule
from orion.modules.helpers import multi_glob
from orion.scanner import Scanner, ScanPolicy

if TYPE_CHECKING:
    from orion.instance import Instance


MAC_COLUMNS = ["mode", "size", "owner", "uid", "gid", "mtime", "atime", "ctime", "btime", "path", "name", "sha256", "md5"]
WINDOWS_COLUMNS = ["path", "name", "mode", "size", "mtime", "atime", "ctime", "btime", "sha256", "md5"]


class _DirlistModule(OrionModule):
    columns: list[str] = []

    @property
    def description(self) -> str:
        return "Walks the filesystem and records metadata and hashes for each regular file."

    def walk_roots(self, inst: "Instance") -> list[str]:
        return [str(inst.target_path)]

    def extra_excluded_dirs(self, inst: "Instance", roots: list[str]) -> list[str]:
        return []

    def run(self, inst: "Instance") -> None:
        roots = self.walk_roots(inst)
        if not roots:
            raise ScanRootError("no walk roots left after exclusions")
        policy = ScanPolicy.from_instance(inst, self.extra_excluded_dirs(inst, roots))
        self.log.debug("Walking %s excluding %s", roots, list(policy.exclusions.dirs))

        scanner = Scanner(policy, logger=self.log)
        # Walk first so a bad root fails the module before any output is created.
        rows = [d.row(self.columns) for d in scanner.walk(roots)]
        self.log.debug("Dir: [%d] Files: [%d]", scanner.stats.dirs, scanner.stats.files)

        self.writer(inst).write_output(self.columns, rows)


class MacDirlistModule(_DirlistModule):
    columns = MAC_COLUMNS

    @property
    def name(self) -> str:
        return "MacDirlistModule"

    @property
    def mode(self) -> str:
        return "mac"


def logical_drives() -> list[str]:
    if hasattr(os, "listdrives"):
        return [d.rstrip("\\") for d in os.listdrives()]
    return [f"{c}:" for c in string.ascii_uppercase if os.path.exists(f"{c}:\\")]


class WindowsDirlistModule(_DirlistModule):
    columns = WINDOWS_COLUMNS

    @property
    def name(self) -> str:
        return "WindowsDirlistModule"

    @property
    def mode(self) -> str:
        return "windows"

    def walk_roots(self, inst: "Instance") -> list[str]:
        target = str(inst.target_path)
        if inst.forensic_mode or os.name != "nt":
            return [target]
        if target not in ("", ".") and Path(target).anchor != target:
            return [target]
        excluded = {d.rstrip(":\\").upper() for d in inst.config.excluded_drives()}
        drives = [d for d in logical_drives() if d.rstrip(":").upper() not in excluded]
        self.log.debug("Found these logical drives: %s", drives)
        return [d + "\\" for d in drives]

    def extra_excluded_dirs(self, inst: "Instance", roots: list[str]) -> list[str]:
        wanted = inst.config.excluded_dirs()
        actual = multi_glob(wanted, roots)
        self.log.debug("Want to exclude: %s", wanted)
        self.log.debug("Actually excluding: %s", actual)
        return actual
