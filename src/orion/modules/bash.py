from __future__ import annotations

from typing import TYPE_CHECKING

from orion.metadata import file_metadata
from orion.modules.base import OrionModule
from orion.modules.helpers import multi_glob, username_from_path
from orion.scanner import ERROR
from orion.time_utils import render_time

if TYPE_CHECKING:
    from orion.instance import Instance


BASH_LOCATIONS = [
    "Users/*/.*_history",
    "Users/*/.bash_sessions/*",
    "private/var/*/.*_history",
    "private/var/*/.bash_sessions/*",
]

HEADER = ["mtime", "atime", "ctime", "btime", "src_file", "user", "item_index", "cmd"]


class MacBashModule(OrionModule):
    @property
    def name(self) -> str:
        return "MacBashModule"

    @property
    def mode(self) -> str:
        return "mac"

    @property
    def description(self) -> str:
        return "Reads the per-user shell *_history files and .bash_sessions on disk."

    def run(self, inst: "Instance") -> None:
        files = sorted(multi_glob(BASH_LOCATIONS, [inst.target_path]))
        if not files:
            self.log.warning("No .*_history or .bash_sessions files were found.")
        else:
            self.log.debug("Parsing [%d] bash items", len(files))

        rows: list[list[str]] = []
        parsed_files = 0
        for fp in files:
            try:
                meta = file_metadata(fp)
                times = [meta.mtime, meta.atime, render_time(meta.ctime), render_time(meta.btime)]
            except OSError as e:
                self.log.debug("Could not get metadata for %r: %s", fp, e)
                times = [ERROR] * 4
            user = username_from_path(fp)
            try:
                with open(fp, "r", encoding="utf-8", errors="replace") as f:
                    for index, line in enumerate(f):
                        rows.append([*times, fp, user, index, line.strip()])
            except OSError as e:
                # Directories inside .bash_sessions match the glob too.
                self.log.debug("Could not open %r: %s", fp, e)
                continue
            parsed_files += 1

        self.log.debug("Parsed [%d] entries from %d files", len(rows), parsed_files)
        self.writer(inst).write_output(HEADER, rows)
