from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

@dataclass(frozen=True, slots=True)
class PathsConfig:
    """
    File system locations used by the control center.

    All paths are stored as Path objects and normalized (expanded + resolved).
    The working directory holds config.json, logs.json and the download
    staging folder; models and binaries default to folders beneath it but
    can live anywhere. Directories can be created with `ensure_dirs()`.
    """
    work_dir: Path
    models_dir: Path
    binaries_dir: Path

    @property
    def config_file(self) -> Path:
        return self.work_dir / "config.json"

    @property
    def log_file(self) -> Path:
        return self.work_dir / "logs.json"

    @property
    def downloads_dir(self) -> Path:
        # Must stay outside binaries_dir: a primary install clears that folder
        return self.work_dir / "downloads"

    @staticmethod
    def from_strings(
        work_dir: str | Path,
        models_dir: str | Path | None = None,
        binaries_dir: str | Path | None = None,
    ) -> "PathsConfig":
        """
        Convenience constructor for CLI/env usage.

        Missing models/binaries folders fall back to `models/` and `bin/`
        under the working directory.
        """
        work = PathsConfig._norm(work_dir)
        return PathsConfig(
            work_dir=work,
            models_dir=PathsConfig._norm(models_dir) if models_dir else work / "models",
            binaries_dir=PathsConfig._norm(binaries_dir) if binaries_dir else work / "bin",
        )

    def ensure_dirs(self) -> None:
        """
        Create the working, models, binaries and downloads directories if they don't exist.
        """
        for p in (self.work_dir, self.models_dir, self.binaries_dir, self.downloads_dir):
            p.mkdir(parents=True, exist_ok=True)

    def validate(self) -> None:
        """
        Validate that every configured location is a directory (or can become one).
        Raises ValueError with a helpful message if something is wrong
        """
        for p, label in [
            (self.work_dir, "work_dir"),
            (self.models_dir, "models_dir"),
            (self.binaries_dir, "binaries_dir"),
        ]:
            if p.exists() and not p.is_dir():
                raise ValueError(f"{label} exists but is not a directory: {p}")
        if self.binaries_dir == self.work_dir:
            raise ValueError("binaries_dir must not be the working directory (it is wiped on reinstall).")

    @staticmethod
    def _norm(p: str | Path) -> Path:
        """
        Normalize a path: expand ~ and resolve to an absolute path.
        """
        return Path(p).expanduser().resolve()
