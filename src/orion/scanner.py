from __future__ import annotations

import glob
import logging
import os
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Iterable, Iterator

from .errors import ScanRootError
from .hashing import hash_file
from .metadata import FileKind, FileMetadata, metadata_from_stat
from .time_utils import render_time

if TYPE_CHECKING:
    from .instance import Instance

LOG = logging.getLogger("orion.scanner")

NOT_EVALUATED = "N/E"
ERROR = "ERROR"


class WalkAction(Enum):
    CONTINUE = "continue"
    SKIP_SUBTREE = "skip_subtree"
    SKIP_ENTRY = "skip_entry"


def file_extension(name: str) -> str | None:
    if "." not in name:
        return None
    return name.rsplit(".", 1)[1]


def _normalize_dir(pattern: str) -> str:
    p = str(PurePath(pattern))
    if len(p) > 1:
        p = p.rstrip("/\\")
    return p


@dataclass(frozen=True)
class ExclusionSet:
    """
    Directory suffixes and file extensions to leave out of a walk.

    A directory is excluded when its full path ends with one of the
    configured entries. The match is a plain string suffix, so "tmp" also
    matches ".../subtmp".
    """

    dirs: tuple[str, ...] = ()
    exts: frozenset[str] = frozenset()

    @classmethod
    def build(cls, dirs: Iterable[str] = (), exts: Iterable[str] = ()) -> "ExclusionSet":
        return cls(
            dirs=tuple(_normalize_dir(d) for d in dirs if d),
            exts=frozenset(e for e in exts if e),
        )

    def with_dirs(self, extra: Iterable[str]) -> "ExclusionSet":
        return replace(self, dirs=self.dirs + tuple(_normalize_dir(d) for d in extra if d))

    def excludes_dir(self, path: str) -> bool:
        return any(path.endswith(d) for d in self.dirs)

    def excludes_file(self, name: str) -> bool:
        ext = file_extension(name)
        if ext is None:
            return False
        return ext in self.exts or ("." + ext) in self.exts


@dataclass(frozen=True)
class HashPolicy:
    md5: bool = False
    sha256: bool = False
    size_limit_bytes: int = 0

    def algorithms_for(self, size: int) -> tuple[str, ...]:
        if size >= self.size_limit_bytes:
            return ()
        algs = []
        if self.sha256:
            algs.append("sha256")
        if self.md5:
            algs.append("md5")
        return tuple(algs)


@dataclass(frozen=True)
class ScanPolicy:
    exclusions: ExclusionSet = field(default_factory=ExclusionSet)
    hashing: HashPolicy = field(default_factory=HashPolicy)
    verbose: bool = False

    @classmethod
    def from_instance(cls, inst: "Instance", extra_excluded_dirs: Iterable[str] = ()) -> "ScanPolicy":
        conf = inst.config
        exclusions = ExclusionSet.build(conf.excluded_dirs(), conf.excluded_exts()).with_dirs(extra_excluded_dirs)
        if inst.mode == "mac" and not inst.forensic_mode:
            exclusions = exclusions.with_dirs(mounted_volume_exclusions(inst.target_path))
        return cls(
            exclusions=exclusions,
            hashing=HashPolicy(
                md5=conf.do_hash_md5(),
                sha256=conf.do_hash_sha256(),
                size_limit_bytes=conf.hash_size_limit_bytes(),
            ),
            verbose=conf.verbose(),
        )


def mounted_volume_exclusions(target: Path | str) -> list[str]:
    # Live macOS mounts every volume (including the boot volume) under /Volumes.
    return sorted(glob.glob(os.path.join(str(target), "Volumes", "*")))


@dataclass(frozen=True)
class FileDescriptor:
    path: str
    name: str
    metadata: FileMetadata | None
    sha256: str
    md5: str

    @property
    def kind(self) -> FileKind | None:
        return self.metadata.kind if self.metadata else None

    @property
    def size(self) -> int | None:
        return self.metadata.size if self.metadata else None

    def column(self, name: str) -> str:
        if name == "path":
            return self.path
        if name == "name":
            return self.name
        if name == "sha256":
            return self.sha256
        if name == "md5":
            return self.md5
        if self.metadata is None:
            return ERROR
        if name == "mode":
            return self.metadata.kind.value
        value = getattr(self.metadata, name)
        if name in ("ctime", "btime"):
            return render_time(value)
        return str(value)

    def row(self, columns: Iterable[str]) -> list[str]:
        return [self.column(c) for c in columns]


@dataclass
class ScanStats:
    entries: int = 0
    dirs: int = 0
    files: int = 0
    symlinks: int = 0
    other: int = 0
    pruned_dirs: int = 0
    skipped_files: int = 0
    errors: int = 0
    elapsed: float = 0.0


class Scanner:
    """
    Depth-first, unordered walk yielding one FileDescriptor per regular file.

    Symlinks are never followed. Per-entry failures are logged and the walk
    carries on; only a root that cannot be opened raises ScanRootError.
    """

    def __init__(self, policy: ScanPolicy, *, logger: logging.Logger | None = None):
        self.policy = policy
        self.log = logger or LOG
        self.stats = ScanStats()

    def _on_error(self, path: str, err: OSError) -> None:
        self.stats.errors += 1
        level = logging.ERROR if self.policy.verbose else logging.DEBUG
        self.log.log(level, "Skipping %s: %s", path, err)

    def classify(self, entry: os.DirEntry) -> WalkAction:
        if entry.is_dir(follow_symlinks=False):
            if self.policy.exclusions.excludes_dir(entry.path):
                return WalkAction.SKIP_SUBTREE
            return WalkAction.CONTINUE
        if entry.is_file(follow_symlinks=False) and self.policy.exclusions.excludes_file(entry.name):
            return WalkAction.SKIP_ENTRY
        return WalkAction.CONTINUE

    def _open_root(self, root: str) -> None:
        try:
            st = os.stat(root)
        except OSError as e:
            raise ScanRootError(f"cannot open walk root {root}: {e}") from e
        if not os.path.isdir(root):
            raise ScanRootError(f"walk root is not a directory: {root} (mode {st.st_mode:o})")

    def walk(self, roots: Iterable[Path | str]) -> Iterator[FileDescriptor]:
        roots = [os.fspath(r) for r in roots]
        for root in roots:
            self._open_root(root)

        started = time.monotonic()
        for root in roots:
            stack = [root]
            first = True
            while stack:
                current = stack.pop()
                try:
                    with os.scandir(current) as it:
                        entries = list(it)
                except OSError as e:
                    if first:
                        raise ScanRootError(f"cannot read walk root {current}: {e}") from e
                    self._on_error(current, e)
                    continue
                first = False
                for entry in entries:
                    self.stats.entries += 1
                    try:
                        action = self.classify(entry)
                        is_dir = entry.is_dir(follow_symlinks=False)
                        is_file = entry.is_file(follow_symlinks=False)
                        is_link = entry.is_symlink()
                    except OSError as e:
                        self._on_error(entry.path, e)
                        continue
                    if action is WalkAction.SKIP_SUBTREE:
                        self.stats.pruned_dirs += 1
                        self.log.debug("Excluding directory %s", entry.path)
                        continue
                    if action is WalkAction.SKIP_ENTRY:
                        self.stats.skipped_files += 1
                        continue
                    if is_dir:
                        self.stats.dirs += 1
                        stack.append(entry.path)
                    elif is_file:
                        self.stats.files += 1
                        yield self._describe(entry)
                    elif is_link:
                        self.stats.symlinks += 1
                    else:
                        self.stats.other += 1
        self.stats.elapsed = time.monotonic() - started
        self.log.debug(
            "Walked [%d] entries in %.3fs (dirs=%d files=%d symlinks=%d other=%d pruned=%d skipped=%d errors=%d)",
            self.stats.entries,
            self.stats.elapsed,
            self.stats.dirs,
            self.stats.files,
            self.stats.symlinks,
            self.stats.other,
            self.stats.pruned_dirs,
            self.stats.skipped_files,
            self.stats.errors,
        )

    def _describe(self, entry: os.DirEntry) -> FileDescriptor:
        hashing = self.policy.hashing
        try:
            meta = metadata_from_stat(entry.stat(follow_symlinks=False))
        except OSError as e:
            self._on_error(entry.path, e)
            return FileDescriptor(
                path=entry.path,
                name=entry.name,
                metadata=None,
                sha256=ERROR if hashing.sha256 else NOT_EVALUATED,
                md5=ERROR if hashing.md5 else NOT_EVALUATED,
            )

        digests = {"sha256": NOT_EVALUATED, "md5": NOT_EVALUATED}
        algorithms = hashing.algorithms_for(meta.size)
        if algorithms:
            try:
                digests.update(hash_file(Path(entry.path), algorithms))
            except OSError as e:
                self._on_error(entry.path, e)
                for alg in algorithms:
                    digests[alg] = ERROR
        return FileDescriptor(
            path=entry.path,
            name=entry.name,
            metadata=meta,
            sha256=digests["sha256"],
            md5=digests["md5"],
        )


def scan(roots: Iterable[Path | str], policy: ScanPolicy) -> list[FileDescriptor]:
    return list(Scanner(policy).walk(roots))
