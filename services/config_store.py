from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional
import json
import logging
import os

from config.paths_config import PathsConfig
from interfaces.errors import ConfigIOError
from interfaces.install.record import InstalledBinaryRecord
from server.launch_config import host_thread_count

logger = logging.getLogger(__name__)

_UPDATABLE_KEYS = {"modelsPath", "binariesPath", "defaultParams"}


@dataclass(frozen=True)
class StoredConfig:
    models_path: Path
    binaries_path: Path
    default_params: dict[str, Any] = field(default_factory=dict)
    installed_binary: Optional[InstalledBinaryRecord] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "modelsPath": str(self.models_path),
            "binariesPath": str(self.binaries_path),
            "defaultParams": dict(self.default_params),
            "installedBinary": self.installed_binary.to_dict() if self.installed_binary else None,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any], fallback: "StoredConfig") -> "StoredConfig":
        """Fields missing from `data` are taken from `fallback`."""
        return StoredConfig(
            models_path=Path(data.get("modelsPath") or fallback.models_path),
            binaries_path=Path(data.get("binariesPath") or fallback.binaries_path),
            default_params=dict(data.get("defaultParams") or fallback.default_params),
            installed_binary=InstalledBinaryRecord.from_dict(data.get("installedBinary")),
        )


def default_config(paths: PathsConfig) -> StoredConfig:
    return StoredConfig(
        models_path=paths.models_dir,
        binaries_path=paths.binaries_dir,
        default_params={
            "ctxSize": 4096,
            "gpuLayers": 0,
            "port": 8080,
            "host": "127.0.0.1",
            "threads": host_thread_count(),
            "batchSize": 512,
        },
        installed_binary=None,
    )


class ConfigStore:
    """
    Durable JSON record of install locations, the installed binary and the
    default run parameters. Every update rewrites the whole file.
    """

    def __init__(self, paths: PathsConfig) -> None:
        self.paths = paths
        self.path = paths.config_file

    def load(self) -> StoredConfig:
        defaults = default_config(self.paths)
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self.save(defaults)
            return defaults
        except OSError as e:
            raise ConfigIOError(f"Could not read {self.path}: {e}") from e

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("config root is not an object")
        except ValueError as e:
            logger.warning("Ignoring unreadable config %s (%s); using defaults", self.path, e)
            return defaults
        return StoredConfig.from_dict(data, defaults)

    def save(self, config: StoredConfig) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise ConfigIOError(f"Could not write {self.path}: {e}") from e

    def update(self, changes: Mapping[str, Any]) -> StoredConfig:
        """Merge `changes` (config.json key names) into the stored record."""
        unknown = sorted(set(changes) - _UPDATABLE_KEYS)
        if unknown:
            logger.warning("Ignoring non-updatable config keys: %s", ", ".join(unknown))
        current = self.load()
        merged = current.to_dict()
        merged.update({k: v for k, v in changes.items() if k in _UPDATABLE_KEYS})
        updated = StoredConfig.from_dict(merged, current)
        self.save(updated)
        return updated

    def reset(self) -> StoredConfig:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise ConfigIOError(f"Could not remove {self.path}: {e}") from e
        return self.load()

    def installed_binary(self) -> Optional[InstalledBinaryRecord]:
        return self.load().installed_binary

    def set_installed_binary(self, record: Optional[InstalledBinaryRecord]) -> StoredConfig:
        updated = replace(self.load(), installed_binary=record)
        self.save(updated)
        return updated
