from __future__ import annotations

import shutil
import subprocess
from typing import TYPE_CHECKING

from orion.modules.base import OrionModule
from orion.modules.helpers import multi_glob, username_from_path

if TYPE_CHECKING:
    from orion.instance import Instance


SSH_LOCATIONS = [
    "Users/*/.ssh/known_hosts",
    "Users/*/.ssh/authorized_keys",
    "private/var/*/.ssh/known_hosts",
    "private/var/*/.ssh/authorized_keys",
]

HEADER = ["source_name", "user", "bits", "fingerprint", "host", "keytype"]


class SSHParseError(Exception):
    pass


def parse_keygen_output(text: str, source: str) -> list[list[str]]:
    """
    Turn `ssh-keygen -l` output into rows.

    Each line looks like: "256 SHA256:abc... host.example.com (ED25519)".
    """
    rows: list[list[str]] = []
    user = username_from_path(source)
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        parts = line.split(" ")
        if len(parts) < 3:
            continue
        bits, fingerprint = parts[0], parts[1]
        keytype = parts[-1].strip("()") if parts[-1].startswith("(") else ""
        host_parts = parts[2:-1] if keytype else parts[2:]
        rows.append([source, user, bits, fingerprint, " ".join(host_parts), keytype])
    return rows


class MacSSHModule(OrionModule):
    keygen = "ssh-keygen"

    @property
    def name(self) -> str:
        return "MacSSHModule"

    @property
    def mode(self) -> str:
        return "mac"

    @property
    def description(self) -> str:
        return "Fingerprints the SSH known_hosts and authorized_keys files on disk."

    def parse_file(self, keygen: str, fp: str) -> list[list[str]]:
        proc = subprocess.run([keygen, "-l", "-f", fp], capture_output=True, text=True, check=False)
        if proc.returncode != 0:
            raise SSHParseError(f"could not parse {fp!r}: {proc.stderr.strip() or proc.stdout.strip()}")
        if proc.stderr and "NOTE:" not in proc.stderr:
            raise SSHParseError(f"could not parse {fp!r}: {proc.stderr.strip()}")
        if "is not a public key file" in proc.stdout:
            raise SSHParseError(f"could not parse {fp!r}: {proc.stdout.strip()}")
        return parse_keygen_output(proc.stdout, fp)

    def run(self, inst: "Instance") -> None:
        keygen = shutil.which(self.keygen)
        if keygen is None:
            raise FileNotFoundError(f"{self.keygen} not found on PATH")

        files = sorted(multi_glob(SSH_LOCATIONS, [inst.target_path]))
        if not files:
            self.log.warning("Files not found in %s", " OR ".join(SSH_LOCATIONS))

        parsed = 0
        entries = 0
        with self.writer(inst) as writer:
            writer.write_header(HEADER)
            for fp in files:
                try:
                    rows = self.parse_file(keygen, fp)
                except (SSHParseError, OSError) as e:
                    self.log.error("failed to parse %r: %s", fp, e)
                    continue
                writer.write_rows(rows)
                parsed += 1
                entries += len(rows)
        self.log.debug("Parsed %d entries from %d of %d .ssh files", entries, parsed, len(files))
