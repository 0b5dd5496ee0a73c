from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

from .time_utils import ns_to_iso, seconds_to_iso

NOT_PRESENT = "N/P"

try:
    import grp
    import pwd
except ImportError:  # Windows has no passwd/group databases
    grp = None
    pwd = None


class FileKind(str, Enum):
    REGULAR = "Regular File"
    DIRECTORY = "Directory"
    SYMLINK = "Symbolic Link"
    NAMED_PIPE = "Named Pipe"
    SOCKET = "Socket"
    DEVICE = "Device"
    OTHER = "Other"


def classify_mode(mode: int) -> FileKind:
    if stat.S_ISREG(mode):
        return FileKind.REGULAR
    if stat.S_ISDIR(mode):
        return FileKind.DIRECTORY
    if stat.S_ISLNK(mode):
        return FileKind.SYMLINK
    if stat.S_ISFIFO(mode):
        return FileKind.NAMED_PIPE
    if stat.S_ISSOCK(mode):
        return FileKind.SOCKET
    if stat.S_ISCHR(mode) or stat.S_ISBLK(mode):
        return FileKind.DEVICE
    return FileKind.OTHER


@lru_cache(maxsize=4096)
def owner_name(uid: int) -> str:
    if pwd is None:
        return NOT_PRESENT
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return NOT_PRESENT


@lru_cache(maxsize=4096)
def group_name(gid: int) -> str:
    if grp is None:
        return NOT_PRESENT
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return NOT_PRESENT


@dataclass(frozen=True)
class FileMetadata:
    kind: FileKind
    size: int
    uid: int
    gid: int
    owner: str
    group: str
    mtime: str
    atime: str
    # None when the platform does not record the timestamp.
    ctime: str | None
    btime: str | None


def metadata_from_stat(st: os.stat_result) -> FileMetadata:
    # On Windows st_ctime is creation time, so there is no change time to report.
    ctime = None if os.name == "nt" else ns_to_iso(st.st_ctime_ns)
    btime = seconds_to_iso(getattr(st, "st_birthtime", None))
    return FileMetadata(
        kind=classify_mode(st.st_mode),
        size=int(st.st_size),
        uid=int(st.st_uid),
        gid=int(st.st_gid),
        owner=owner_name(int(st.st_uid)),
        group=group_name(int(st.st_gid)),
        mtime=ns_to_iso(st.st_mtime_ns),
        atime=ns_to_iso(st.st_atime_ns),
        ctime=ctime,
        btime=btime,
    )


def file_metadata(path: Path | str) -> FileMetadata:
    return metadata_from_stat(os.lstat(path))
