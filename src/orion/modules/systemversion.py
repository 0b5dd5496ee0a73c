from __future__ import annotations

import plistlib
from typing import TYPE_CHECKING

from orion.modules.base import OrionModule

if TYPE_CHECKING:
    from orion.instance import Instance


SYSTEM_VERSION_PLIST = "System/Library/CoreServices/SystemVersion.plist"

HEADER = ["product_name", "product_version", "product_build_version", "src_file"]


class MacSystemVersionModule(OrionModule):
    @property
    def name(self) -> str:
        return "MacSystemVersionModule"

    @property
    def mode(self) -> str:
        return "mac"

    @property
    def description(self) -> str:
        return "Records the macOS product name, version and build from SystemVersion.plist."

    def run(self, inst: "Instance") -> None:
        path = inst.target_path / SYSTEM_VERSION_PLIST
        self.log.debug("Grabbing OS version from %s", path)
        # Missing or unreadable plist fails the module before any output exists.
        with path.open("rb") as f:
            data = plistlib.load(f)

        row = [
            str(data.get("ProductName", "")),
            str(data.get("ProductVersion", "")),
            str(data.get("ProductBuildVersion", "")),
            str(path),
        ]
        self.log.debug("Got OS version %s", row[1])
        self.writer(inst).write_output(HEADER, [row])
