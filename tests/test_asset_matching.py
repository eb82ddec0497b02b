"""Tests for release asset filename rules."""

from __future__ import annotations

from binaries.asset_matching import (
    UNKNOWN_VERSION,
    find_auxiliary_asset,
    is_auxiliary,
    needs_auxiliary,
    parse_cuda_version,
    parse_version_tag,
)
from interfaces.release.asset import ReleaseAsset


def _asset(name: str, id: int = 1) -> ReleaseAsset:
    return ReleaseAsset(
        name=name,
        download_url=f"https://example.invalid/{name}",
        size_bytes=1000,
        created_at="2024-01-01T00:00:00Z",
        id=id,
    )


class TestParsing:
    def test_version_tag_from_build_number(self):
        assert parse_version_tag("llama-b1234-bin-linux-x64.zip") == "1234"

    def test_version_tag_unknown_without_build(self):
        assert parse_version_tag("cudart-llama-bin-win-cuda-12.4-x64.zip") == UNKNOWN_VERSION

    def test_cuda_version(self):
        assert parse_cuda_version("llama-b4000-bin-win-cuda-12.4-x64.zip") == "12.4"
        assert parse_cuda_version("llama-b4000-bin-win-cuda_11.7-x64.zip") == "11.7"
        assert parse_cuda_version("llama-b4000-bin-macos-arm64.zip") is None

    def test_auxiliary_flags(self):
        assert is_auxiliary("cudart-llama-bin-win-cuda-12.4-x64.zip")
        assert not is_auxiliary("llama-b4000-bin-win-cuda-12.4-x64.zip")
        assert needs_auxiliary("llama-b4000-bin-win-cuda-12.4-x64.zip")
        assert not needs_auxiliary("llama-b4000-bin-win-cpu-x64.zip")
        assert not needs_auxiliary("cudart-llama-bin-win-cuda-12.4-x64.zip")


class TestFindAuxiliary:
    def test_matches_same_cuda_version(self):
        primary = _asset("llama-b4000-bin-win-cuda-12.4-x64.zip")
        runtime_11 = _asset("cudart-llama-bin-win-cuda-11.7-x64.zip", id=2)
        runtime_12 = _asset("cudart-llama-bin-win-cuda-12.4-x64.zip", id=3)
        assert find_auxiliary_asset(primary, [primary, runtime_11, runtime_12]) == runtime_12

    def test_none_for_cpu_build(self):
        primary = _asset("llama-b4000-bin-win-cpu-x64.zip")
        runtime = _asset("cudart-llama-bin-win-cuda-12.4-x64.zip", id=2)
        assert find_auxiliary_asset(primary, [primary, runtime]) is None

    def test_none_when_no_runtime_for_version(self):
        primary = _asset("llama-b4000-bin-win-cuda-12.8-x64.zip")
        runtime = _asset("cudart-llama-bin-win-cuda-12.4-x64.zip", id=2)
        assert find_auxiliary_asset(primary, [primary, runtime]) is None
