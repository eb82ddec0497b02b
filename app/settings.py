from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from app.bootstrap import get_app_base_dir
from config.control_config import ControlConfig
from config.paths_config import PathsConfig

@dataclass(frozen=True, slots=True)
class AppConfig:
    paths: PathsConfig
    control: ControlConfig


def build_settings(base_dir: Path | None = None, **control_overrides) -> AppConfig:

    paths = PathsConfig.from_strings(
        work_dir=base_dir or get_app_base_dir(),
    )
    paths.validate()
    paths.ensure_dirs()

    control = ControlConfig.from_strings(
        github_token=os.getenv("GITHUB_TOKEN"),
        **control_overrides,
    )

    return AppConfig(paths=paths, control=control)
