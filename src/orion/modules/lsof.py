from __future__ import annotations

from typing import TYPE_CHECKING

import psutil

from orion.modules.base import OrionModule

if TYPE_CHECKING:
    from orion.instance import Instance


HEADER = ["cmd", "pid", "user", "file_descriptor", "mode", "name"]


def open_file_rows(info: dict, files) -> list[list[str]]:
    rows = []
    for f in files:
        rows.append(
            [
                info.get("name") or "",
                str(info.get("pid", "")),
                info.get("username") or "",
                str(f.fd),
                # Only Linux reports the open mode.
                getattr(f, "mode", ""),
                f.path,
            ]
        )
    return rows


class MacLiveLsofModule(OrionModule):
    live_only = True

    @property
    def name(self) -> str:
        return "MacLiveLsofModule"

    @property
    def mode(self) -> str:
        return "mac"

    @property
    def description(self) -> str:
        return "Records the regular files each process holds open on a live system."

    def run(self, inst: "Instance") -> None:
        rows: list[list[str]] = []
        denied = 0
        for proc in psutil.process_iter(attrs=["pid", "name", "username"], ad_value=None):
            try:
                files = proc.open_files()
            except (psutil.AccessDenied, psutil.ZombieProcess):
                denied += 1
                continue
            except psutil.NoSuchProcess:
                continue
            rows.extend(open_file_rows(proc.info, files))
        if denied:
            self.log.debug("Could not list open files of %d processes", denied)
        self.log.debug("Recorded [%d] open files", len(rows))
        self.writer(inst).write_output(HEADER, rows)
