from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError, ConfigFieldError, UnsupportedModeError

SUPPORTED_MODES = ("mac", "windows")
SUPPORTED_FORMATS = ("csv", "json")


@dataclass(frozen=True)
class Settings:
    log_level: str
    output_dir: Path


def load_settings() -> Settings:
    log_level = os.getenv("ORION_LOG_LEVEL", "INFO")
    output_dir = Path(os.getenv("ORION_OUTPUT_DIR", "./orion_output"))
    return Settings(log_level=log_level, output_dir=output_dir)


class _ModeConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    forensic_mode: bool = Field(default=False, alias="ForensicMode")
    verbose: bool = Field(default=False, alias="Verbose")
    modules: list[str] = Field(default_factory=list, alias="Modules")
    dirlist_excluded_dirs: list[str] = Field(default_factory=list, alias="DirlistExcludedDirs")
    dirlist_excluded_exts: list[str] = Field(default_factory=list, alias="DirlistExcludedExts")
    dirlist_hash_size_limit_bytes: int = Field(default=0, ge=0, alias="DirlistHashSizeLimitBytes")
    dirlist_do_hash_md5: bool = Field(default=False, alias="DirlistDoHashMD5")
    dirlist_do_hash_sha256: bool = Field(default=False, alias="DirlistDoHashSHA256")


class MacConfig(_ModeConfig):
    pass


class WindowsConfig(_ModeConfig):
    dirlist_excluded_drives: list[str] = Field(default_factory=list, alias="DirlistExcludedDrives")


_MODE_MODELS: dict[str, type[_ModeConfig]] = {"mac": MacConfig, "windows": WindowsConfig}


@dataclass(frozen=True)
class Config:
    """
    Parsed configuration for one platform variant.

    Modules only use the accessors below. A key that does not exist for
    the loaded variant raises ConfigFieldError.
    """

    path: Path
    mode: str
    data: Union[MacConfig, WindowsConfig]

    def modules(self) -> list[str]:
        return list(self.data.modules)

    def excluded_dirs(self) -> list[str]:
        return list(self.data.dirlist_excluded_dirs)

    def excluded_exts(self) -> list[str]:
        return list(self.data.dirlist_excluded_exts)

    def excluded_drives(self) -> list[str]:
        if not isinstance(self.data, WindowsConfig):
            raise ConfigFieldError("dirlist excluded drives", self.mode)
        return list(self.data.dirlist_excluded_drives)

    def hash_size_limit_bytes(self) -> int:
        return self.data.dirlist_hash_size_limit_bytes

    def do_hash_md5(self) -> bool:
        return self.data.dirlist_do_hash_md5

    def do_hash_sha256(self) -> bool:
        return self.data.dirlist_do_hash_sha256

    def forensic_mode(self) -> bool:
        return self.data.forensic_mode

    def verbose(self) -> bool:
        return self.data.verbose


def parse_config(raw: dict, *, mode: str, path: Path = Path("<memory>")) -> Config:
    model = _MODE_MODELS.get(mode)
    if model is None:
        raise UnsupportedModeError(mode)
    try:
        data = model.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"invalid {mode} config {path}: {e}") from e
    return Config(path=path, mode=mode, data=data)


def load_config(path: Path | str, mode: str) -> Config:
    if not str(path):
        raise ConfigError("empty filepath for config provided")
    if mode not in SUPPORTED_MODES:
        raise UnsupportedModeError(mode)
    path = Path(path)
    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"config file not found: {path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"cannot parse {mode} config toml file {path}: {e}") from e
    return parse_config(raw, mode=mode, path=path)
