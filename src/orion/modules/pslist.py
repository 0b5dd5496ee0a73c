from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import psutil

from orion.modules.base import OrionModule

if TYPE_CHECKING:
    from orion.instance import Instance


HEADER = ["pid", "ppid", "user", "state", "proc_start", "cpu_time", "cmd"]

_ATTRS = ["pid", "ppid", "username", "status", "create_time", "cpu_times", "cmdline", "name"]


def process_row(info: dict) -> list[str]:
    created = info.get("create_time")
    started = datetime.fromtimestamp(created, tz=timezone.utc).isoformat() if created else ""
    cpu = info.get("cpu_times")
    cpu_time = f"{cpu.user + cpu.system:.2f}" if cpu else ""
    cmdline = info.get("cmdline") or []
    cmd = " ".join(cmdline) if cmdline else (info.get("name") or "")
    return [
        str(info.get("pid", "")),
        str(info.get("ppid", "")),
        info.get("username") or "",
        info.get("status") or "",
        started,
        cpu_time,
        cmd,
    ]


class _LivePslistModule(OrionModule):
    live_only = True

    @property
    def description(self) -> str:
        return "Records the current process listing when run on a live system."

    def run(self, inst: "Instance") -> None:
        rows = []
        # ad_value fills fields the current user is not allowed to read.
        for proc in psutil.process_iter(attrs=_ATTRS, ad_value=None):
            rows.append(process_row(proc.info))
        self.log.debug("Recorded [%d] processes", len(rows))
        self.writer(inst).write_output(HEADER, rows)


class MacLivePslistModule(_LivePslistModule):
    @property
    def name(self) -> str:
        return "MacLivePslistModule"

    @property
    def mode(self) -> str:
        return "mac"


class WindowsLivePslistModule(_LivePslistModule):
    @property
    def name(self) -> str:
        return "WindowsLivePslistModule"

    @property
    def mode(self) -> str:
        return "windows"
