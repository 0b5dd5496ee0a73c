from __future__ import annotations

import threading
from typing import Callable, Iterable

from .errors import DuplicateModuleError, ModuleNotFoundInRegistry, RegistryFrozenError
from .modules.base import OrionModule

ModuleFactory = Callable[[], OrionModule]


class ModuleRegistry:
    """
    Name -> factory table for artifact modules.

    Filled once during startup, then frozen; lookups after that are
    read-only and need no locking.
    """

    def __init__(self) -> None:
        self._factories: dict[str, ModuleFactory] = {}
        self._frozen = False

    def register(self, name: str, factory: ModuleFactory) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"cannot register {name!r}: registry is frozen")
        if name in self._factories:
            raise DuplicateModuleError(f"module {name!r} registered twice")
        self._factories[name] = factory

    def register_module(self, module_cls: type[OrionModule]) -> None:
        self.register(module_cls().name, module_cls)

    def freeze(self) -> "ModuleRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def names(self) -> list[str]:
        return sorted(self._factories)

    def resolvable(self, names: Iterable[str]) -> list[str]:
        return [n for n in names if n in self._factories]

    def create(self, name: str) -> OrionModule | None:
        factory = self._factories.get(name)
        if factory is None:
            return None
        return factory()

    def get(self, name: str) -> OrionModule:
        mod = self.create(name)
        if mod is None:
            raise ModuleNotFoundInRegistry(name)
        return mod


_default: ModuleRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> ModuleRegistry:
    """The built-in module table, created on first use and frozen."""
    global _default
    with _default_lock:
        if _default is None:
            from .modules import BUILTIN_MODULES

            reg = ModuleRegistry()
            for module_cls in BUILTIN_MODULES:
                reg.register_module(module_cls)
            _default = reg.freeze()
        return _default
