from __future__ import annotations

import csv
import io
import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Sequence

from .config import SUPPORTED_FORMATS
from .errors import UnsupportedFormatError, WriterStateError

LOG = logging.getLogger("orion.datawriter")


class OutputWriter(ABC):
    """
    Buffered per-module output sink.

    All operations are serialized by a lock, so threads inside one module
    may share a writer. The header has to be written before any row.
    """

    def __init__(self, path: Path, module: str, runtime: str):
        self.path = path
        self.module = module
        self.runtime = runtime
        self._lock = threading.Lock()
        self._file: io.TextIOWrapper | None = path.open("w", encoding="utf-8", newline="")
        self._header: list[str] | None = None

    @property
    @abstractmethod
    def output_type(self) -> str:
        """File extension and format name ('csv' or 'json')."""
        pass

    @property
    def closed(self) -> bool:
        return self._file is None

    @abstractmethod
    def _emit_header(self, header: list[str]) -> None:
        pass

    @abstractmethod
    def _emit_row(self, row: list[str]) -> None:
        pass

    def _check_open(self) -> None:
        if self._file is None:
            raise WriterStateError(f"writer for {self.module} is closed")

    def write_header(self, header: Sequence[str]) -> None:
        with self._lock:
            self._check_open()
            if self._header is not None:
                raise WriterStateError(f"header already written for {self.module}")
            self._header = [str(h) for h in header]
            self._emit_header(self._header)

    def write_row(self, row: Sequence[object]) -> None:
        with self._lock:
            self._write_row_locked(row)

    def write_rows(self, rows: Iterable[Sequence[object]]) -> None:
        with self._lock:
            for row in rows:
                self._write_row_locked(row)

    def _write_row_locked(self, row: Sequence[object]) -> None:
        self._check_open()
        if self._header is None:
            raise WriterStateError(f"row written before header for {self.module}")
        self._emit_row(["" if v is None else str(v) for v in row])

    def write_output(self, header: Sequence[str], rows: Iterable[Sequence[object]]) -> None:
        self.write_header(header)
        self.write_rows(rows)
        self.close()

    def close(self) -> None:
        with self._lock:
            if self._file is None:
                return
            self._file.flush()
            self._file.close()
            self._file = None
        LOG.debug("Closed %s output %s", self.module, self.path)

    def __enter__(self) -> "OutputWriter":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class CSVWriter(OutputWriter):
    def __init__(self, path: Path, module: str, runtime: str):
        super().__init__(path, module, runtime)
        self._csv = csv.writer(self._file)

    @property
    def output_type(self) -> str:
        return "csv"

    def _emit_header(self, header: list[str]) -> None:
        self._csv.writerow(header)

    def _emit_row(self, row: list[str]) -> None:
        self._csv.writerow(row)


class JSONLinesWriter(OutputWriter):
    @property
    def output_type(self) -> str:
        return "json"

    def _emit_header(self, header: list[str]) -> None:
        # First line carries the column names so a row-less output still describes itself.
        self._file.write(json.dumps({"header": header}, ensure_ascii=False) + "\n")

    def _emit_row(self, row: list[str]) -> None:
        obj = dict(zip(self._header, row))
        self._file.write(json.dumps(obj, ensure_ascii=False, sort_keys=False) + "\n")


_WRITERS: dict[str, type[OutputWriter]] = {"csv": CSVWriter, "json": JSONLinesWriter}


def output_filename(module: str, runtime: str, fmt: str) -> str:
    return f"{runtime}_{module}.{fmt}"


def create_writer(module: str, runtime: str, fmt: str, output_dir: Path) -> OutputWriter:
    if fmt not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(f"cannot create writer for output type {fmt!r}")
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = (output_dir / output_filename(module, runtime, fmt)).resolve()
    writer = _WRITERS[fmt](path, module, runtime)
    LOG.debug("Created %s output for module %s", fmt, module)
    return writer
