from __future__ import annotations

from pathlib import Path
import logging

from interfaces.model.model_file import ModelFile

logger = logging.getLogger(__name__)


def list_models(models_dir: Path, extension: str = ".gguf") -> list[ModelFile]:
    """
    Return the model files found directly in `models_dir`, sorted by name.
    A missing folder is created and reported as empty.
    """
    if not models_dir.is_dir():
        logger.info("Models folder %s does not exist; creating it", models_dir)
        models_dir.mkdir(parents=True, exist_ok=True)
        return []

    out: list[ModelFile] = []
    for p in sorted(models_dir.iterdir()):
        if p.is_file() and p.name.lower().endswith(extension):
            out.append(ModelFile(name=p.name, path=p, size_bytes=p.stat().st_size))
    return out


def resolve_model_path(models_dir: Path, model_name: str) -> Path | None:
    """Return the model file path if it is a readable file inside `models_dir`."""
    candidate = (models_dir / model_name).resolve()
    if candidate.parent != models_dir.resolve():
        # Model names are bare filenames; reject anything that walks out of the folder
        return None
    if not candidate.is_file():
        return None
    try:
        with candidate.open("rb"):
            pass
    except OSError:
        return None
    return candidate
