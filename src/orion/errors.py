from __future__ import annotations


class OrionError(Exception):
    """Base class for collector errors."""


# Startup / bootstrap failures: stop the run before any module executes.


class ConfigError(OrionError):
    pass


class ConfigFieldError(ConfigError):
    """A config key that does not apply to the loaded platform variant."""

    def __init__(self, field: str, mode: str):
        super().__init__(f"could not read {field} key for config of type {mode!r}")
        self.field = field
        self.mode = mode


class UnsupportedModeError(ConfigError):
    def __init__(self, mode: str):
        super().__init__(f"cannot use config type {mode!r}")
        self.mode = mode


class LoggingSetupError(OrionError):
    pass


class OutputDirectoryError(OrionError):
    pass


class ModuleResolutionError(OrionError):
    """None of the requested module names resolve to a registry entry."""


# Registry misuse: programming errors raised during startup.


class DuplicateModuleError(OrionError):
    pass


class RegistryFrozenError(OrionError):
    pass


# Module-level failures: recorded in the run summary, never process-fatal.


class ModuleNotFoundInRegistry(OrionError):
    def __init__(self, name: str):
        super().__init__(f"failed to create instance of {name!r}: not registered")
        self.name = name


class ScanRootError(OrionError):
    pass


class LiveModuleError(OrionError):
    pass


class ModeMismatchError(OrionError):
    pass


class UnsupportedFormatError(OrionError):
    pass


class WriterStateError(OrionError):
    pass
