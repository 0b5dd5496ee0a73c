from __future__ import annotations

import socket
from typing import TYPE_CHECKING

import psutil

from orion.modules.base import OrionModule

if TYPE_CHECKING:
    from orion.instance import Instance


HEADER = ["protocol", "source_ip", "source_port", "dest_ip", "dest_port", "state", "pid"]

_PROTOCOLS = {
    (socket.AF_INET, socket.SOCK_STREAM): "tcp4",
    (socket.AF_INET6, socket.SOCK_STREAM): "tcp6",
    (socket.AF_INET, socket.SOCK_DGRAM): "udp4",
    (socket.AF_INET6, socket.SOCK_DGRAM): "udp6",
}


def split_address(addr) -> tuple[str, str]:
    # psutil reports an unbound or unconnected end as an empty tuple.
    if not addr:
        return "*", "*"
    return str(addr.ip), str(addr.port)


def connection_row(conn, pid: int | None = None) -> list[str]:
    """One output row; per-process entries have no pid field, so it is passed in."""
    pid = getattr(conn, "pid", pid)
    source_ip, source_port = split_address(conn.laddr)
    dest_ip, dest_port = split_address(conn.raddr)
    state = "" if conn.status == psutil.CONN_NONE else conn.status
    return [
        _PROTOCOLS.get((conn.family, conn.type), "unknown"),
        source_ip,
        source_port,
        dest_ip,
        dest_port,
        state,
        "" if pid is None else str(pid),
    ]


class MacLiveNetstatModule(OrionModule):
    live_only = True

    @property
    def name(self) -> str:
        return "MacLiveNetstatModule"

    @property
    def mode(self) -> str:
        return "mac"

    @property
    def description(self) -> str:
        return "Records current network connections on a live system."

    def _per_process_rows(self) -> list[list[str]]:
        rows = []
        denied = 0
        for proc in psutil.process_iter():
            try:
                conns = proc.net_connections(kind="inet")
            except (psutil.AccessDenied, psutil.ZombieProcess):
                denied += 1
                continue
            except psutil.NoSuchProcess:
                continue
            rows.extend(connection_row(c, proc.pid) for c in conns)
        if denied:
            self.log.warning("Could not read connections of %d processes", denied)
        return rows

    def run(self, inst: "Instance") -> None:
        try:
            rows = [connection_row(c) for c in psutil.net_connections(kind="inet")]
        except psutil.AccessDenied:
            # macOS only lists every socket for root.
            self.log.debug("System-wide connection table denied, walking processes")
            rows = self._per_process_rows()
        self.log.debug("Recorded [%d] connections", len(rows))
        self.writer(inst).write_output(HEADER, rows)
