from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO, Iterable

CHUNK_SIZE = 1024 * 1024


def _hash_stream(stream: BinaryIO, algorithms: Iterable[str], chunk_size: int = CHUNK_SIZE) -> dict[str, str]:
    hashers = {name: hashlib.new(name) for name in algorithms}
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        for h in hashers.values():
            h.update(chunk)
    return {name: h.hexdigest() for name, h in hashers.items()}


def hash_file(path: Path, algorithms: Iterable[str] = ("sha256", "md5")) -> dict[str, str]:
    """Compute every requested digest in a single read of the file."""
    algorithms = tuple(algorithms)
    if not algorithms:
        return {}
    with Path(path).open("rb") as f:
        return _hash_stream(f, algorithms=algorithms)
