from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional
import logging

import psutil

from interfaces.errors import InvalidRunParameters

logger = logging.getLogger(__name__)

# camelCase keys as stored in config.json's defaultParams
_KEY_ALIASES: dict[str, str] = {
    "ctxSize": "context_size",
    "contextSize": "context_size",
    "gpuLayers": "gpu_layers",
    "batchSize": "batch_size",
    "flashAttn": "flash_attention",
    "flashAttention": "flash_attention",
    "noMmap": "no_mmap",
    "apiKey": "api_key",
}


def host_thread_count() -> int:
    return psutil.cpu_count(logical=True) or 1


@dataclass(frozen=True, slots=True)
class RunParameters:
    model_name: str
    port: int
    host: str
    context_size: int
    gpu_layers: int
    threads: int
    batch_size: int
    flash_attention: bool = False
    mlock: bool = False
    no_mmap: bool = False
    # Kept out of repr so resolved parameters can be logged as-is
    api_key: Optional[str] = field(default=None, repr=False)

    def validate(self) -> None:
        if not isinstance(self.model_name, str) or not self.model_name.strip():
            raise InvalidRunParameters("model_name must be a non-empty string.")
        if not _is_int(self.port) or not (0 < self.port < 65536):
            raise InvalidRunParameters("port must be an integer between 1 and 65535.")
        if not isinstance(self.host, str) or not self.host.strip():
            raise InvalidRunParameters("host must be a non-empty string.")
        if not _is_int(self.context_size) or self.context_size <= 0:
            raise InvalidRunParameters("context_size must be a positive integer.")
        if not _is_int(self.gpu_layers) or self.gpu_layers < 0:
            raise InvalidRunParameters("gpu_layers must be a non-negative integer.")
        if not _is_int(self.threads) or self.threads <= 0:
            raise InvalidRunParameters("threads must be a positive integer.")
        if not _is_int(self.batch_size) or self.batch_size <= 0:
            raise InvalidRunParameters("batch_size must be a positive integer.")
        for name in ("flash_attention", "mlock", "no_mmap"):
            if not isinstance(getattr(self, name), bool):
                raise InvalidRunParameters(f"{name} must be a boolean.")
        if self.api_key is not None and not isinstance(self.api_key, str):
            raise InvalidRunParameters("api_key must be a string or None.")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _builtin_defaults() -> dict[str, Any]:
    return {
        "port": 8080,
        "host": "127.0.0.1",
        "context_size": 4096,
        "gpu_layers": 0,
        "threads": host_thread_count(),
        "batch_size": 512,
        "flash_attention": False,
        "mlock": False,
        "no_mmap": False,
        "api_key": None,
    }


def _normalize_keys(values: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    if not values:
        return {}
    return {_KEY_ALIASES.get(k, k): v for k, v in values.items() if v is not None}


def _apply_overrides(values: dict[str, Any], overrides: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    if not overrides:
        return values
    unknown = sorted(set(overrides.keys()) - set(values.keys()))
    if unknown:
        raise InvalidRunParameters(f"Unknown run parameter keys: {', '.join(unknown)}")
    for key, val in overrides.items():
        values[key] = val
    return values


def resolve_run_parameters(
    model_name: str,
    params: Optional[Mapping[str, Any]] = None,
    *,
    defaults: Optional[Mapping[str, Any]] = None,
) -> RunParameters:
    """
    Merge built-in defaults, the stored defaultParams and the caller's params
    (in that order) into a validated RunParameters.

    Absent or None fields fall back to the layer below. Values are never
    coerced: a string port is an error, not a number.
    """
    values = _builtin_defaults()

    stored = _normalize_keys(defaults)
    ignored = sorted(set(stored) - set(values))
    if ignored:
        logger.debug("Ignoring unknown stored default params: %s", ", ".join(ignored))
    values = _apply_overrides(values, {k: v for k, v in stored.items() if k in values})

    values = _apply_overrides(values, _normalize_keys(params))

    run = RunParameters(model_name=model_name, **values)
    run.validate()
    logger.debug("Resolved RunParameters: %s", run)
    return run


def build_server_args(executable: Path, model_path: Path, run: RunParameters) -> list[str]:
    cmd = [
        str(executable),
        "-m", str(model_path),
        "--port", str(run.port),
        "--host", run.host,
        "-c", str(run.context_size),
        "-ngl", str(run.gpu_layers),
        "-t", str(run.threads),
        "-b", str(run.batch_size),
    ]
    if run.api_key:
        cmd += ["--api-key", run.api_key]
    if run.flash_attention:
        cmd += ["--flash-attn", "on"]
    if run.mlock:
        cmd.append("--mlock")
    if run.no_mmap:
        cmd.append("--no-mmap")
    return cmd
