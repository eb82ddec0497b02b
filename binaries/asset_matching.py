"""
Filename rules for llama.cpp release assets.

Release assets carry no structured metadata beyond their names, so the
version build number and the CUDA runtime version are parsed out of them:

    llama-b1234-bin-win-cuda-12.4-x64.zip   -> build "1234", cuda "12.4"
    cudart-llama-bin-win-cuda-12.4-x64.zip  -> auxiliary runtime, cuda "12.4"

A primary CUDA build is paired with the cudart asset of the same CUDA
version. When no pairing can be made the caller gets None and the user
picks manually.
"""
from __future__ import annotations

from typing import Iterable, Optional
import re

from interfaces.release.asset import ReleaseAsset

_BUILD_RE = re.compile(r"llama-b(\d+)-")
_CUDA_RE = re.compile(r"cuda[_-](\d+\.\d+)", re.IGNORECASE)

UNKNOWN_VERSION = "unknown"


def parse_version_tag(name: str) -> str:
    match = _BUILD_RE.search(name)
    return match.group(1) if match else UNKNOWN_VERSION


def parse_cuda_version(name: str) -> Optional[str]:
    match = _CUDA_RE.search(name)
    return match.group(1) if match else None


def is_auxiliary(name: str) -> bool:
    return "cudart" in name.lower()


def needs_auxiliary(name: str) -> bool:
    """True for primary CUDA builds, which expect a matching CUDA runtime beside them."""
    return "cuda" in name.lower() and not is_auxiliary(name)


def find_auxiliary_asset(primary: ReleaseAsset, assets: Iterable[ReleaseAsset]) -> Optional[ReleaseAsset]:
    if not needs_auxiliary(primary.name):
        return None
    cuda = parse_cuda_version(primary.name)
    if cuda is None:
        return None
    for asset in assets:
        if is_auxiliary(asset.name) and parse_cuda_version(asset.name) == cuda:
            return asset
    return None
