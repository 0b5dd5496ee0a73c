from __future__ import annotations

from pathlib import Path

from orion.hashing import hash_file


def test_hash_file(tmp_path: Path):
    p = tmp_path / "x.bin"
    p.write_bytes(b"abc")

    hashes = hash_file(p)
    assert set(hashes.keys()) == {"sha256", "md5"}
    assert hashes["md5"] == "900150983cd24fb0d6963f7d28e17f72"
    assert hashes["sha256"] == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_hash_file_single_algorithm(tmp_path: Path):
    p = tmp_path / "x.bin"
    p.write_bytes(b"abc")

    assert hash_file(p, ("md5",)) == {"md5": "900150983cd24fb0d6963f7d28e17f72"}
    assert hash_file(p, ()) == {}


def test_hash_file_spans_chunks(tmp_path: Path):
    import hashlib

    from orion.hashing import CHUNK_SIZE

    data = b"z" * (CHUNK_SIZE * 2 + 7)
    p = tmp_path / "big.bin"
    p.write_bytes(data)

    assert hash_file(p, ("sha256",))["sha256"] == hashlib.sha256(data).hexdigest()
