from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from orion.datawriter import OutputWriter, create_writer
from orion.errors import LiveModuleError, ModeMismatchError

if TYPE_CHECKING:
    from orion.instance import Instance


class OrionModule(ABC):
    """
    Abstract base class for all artifact modules.

    A module is created fresh for every run, started exactly once, and
    writes its own output file into the instance output directory.
    """

    live_only: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name of the module as it appears in config (e.g. 'MacBashModule')."""
        pass

    @property
    @abstractmethod
    def mode(self) -> str:
        """Platform variant the module targets ('mac' or 'windows')."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human readable description."""
        pass

    @property
    def log(self) -> logging.Logger:
        return logging.getLogger(f"orion.module.{self.name}")

    def start(self, inst: "Instance") -> None:
        if inst.mode != self.mode:
            raise ModeMismatchError(f"{self.name} targets {self.mode}, instance is running in {inst.mode} mode")
        if self.live_only and inst.forensic_mode:
            raise LiveModuleError(f"{self.name} is a live module and cannot run in forensic mode")
        self.run(inst)

    @abstractmethod
    def run(self, inst: "Instance") -> None:
        """
        Execute the module logic.
        Must leave a complete output file behind on success.
        """
        pass

    def writer(self, inst: "Instance") -> OutputWriter:
        return create_writer(self.name, inst.runtime, inst.output_format, inst.output_path)
