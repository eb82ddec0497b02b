"""Tests for the command boundary: results, not exceptions."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
import requests

from app.container import build_container
from app.settings import build_settings


def _mock_transport_factory(files: dict[str, bytes]):
    def handler(request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        if name not in files:
            return httpx.Response(404)
        return httpx.Response(200, content=files[name])

    return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def deps(tmp_path: Path, make_zip):
    cfg = build_settings(base_dir=tmp_path / "app", settle_delay_s=0.1)
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("offline")
    files = {"llama-b42-bin-linux-x64.zip": make_zip({"llama-server": b"#!/bin/sh\n" + b"x" * 512})}
    return build_container(cfg, client_factory=_mock_transport_factory(files), catalog_session=session)


@pytest.fixture
def control(deps):
    return deps["control"]


class TestErrors:
    @pytest.mark.asyncio
    async def test_missing_model_reports_kind(self, control):
        result = await control.start_server("model.gguf", {"port": 8080})
        assert result.ok is False
        assert result.error.kind == "model_not_found"
        assert result.error.category == "process"
        status = await control.get_server_status()
        assert status.value.to_dict() == {"running": False, "model": None}

    @pytest.mark.asyncio
    async def test_catalog_offline_is_network_error(self, control):
        result = await control.fetch_releases()
        assert result.ok is False
        assert result.error.to_dict()["kind"] == "catalog_unavailable"
        assert result.error.category == "network"

    @pytest.mark.asyncio
    async def test_invalid_params_reported(self, control, deps):
        models = deps["store"].load().models_path
        (models / "m.gguf").write_bytes(b"GGUF")
        result = await control.start_server("m.gguf", {"port": "eighty"})
        assert result.error.kind == "invalid_run_parameters"

    @pytest.mark.asyncio
    async def test_download_404_reported(self, control):
        result = await control.install_binary({
            "name": "llama-b1-bin-missing.zip",
            "url": "https://downloads.test/llama-b1-bin-missing.zip",
            "size": 1000,
            "created": "",
            "id": 1,
        })
        assert result.error.kind == "download_failed"


class TestBinaries:
    @pytest.mark.asyncio
    async def test_install_from_dict_and_query(self, control):
        result = await control.install_binary({
            "name": "llama-b42-bin-linux-x64.zip",
            "url": "https://downloads.test/llama-b42-bin-linux-x64.zip",
            "size": 0,
            "created": "2024-01-01T00:00:00Z",
            "id": 7,
        })
        assert result.ok, result.error
        assert result.value.version_tag == "42"

        installed = await control.get_installed_binary()
        assert installed.value.name == "llama-b42-bin-linux-x64.zip"

        assert (await control.wipe_binaries()).ok
        assert (await control.get_installed_binary()).value is None


class TestModelsAndConfig:
    @pytest.mark.asyncio
    async def test_list_models_filters_and_sorts(self, control, deps):
        models = deps["store"].load().models_path
        for name in ("b.gguf", "a.gguf", "notes.txt"):
            (models / name).write_bytes(b"data")
        result = await control.list_models()
        assert [m.name for m in result.value] == ["a.gguf", "b.gguf"]

    @pytest.mark.asyncio
    async def test_update_and_reset_config(self, control, tmp_path):
        updated = await control.update_config({"modelsPath": str(tmp_path / "elsewhere")})
        assert updated.value["modelsPath"] == str(tmp_path / "elsewhere")

        reset = await control.reset_config()
        assert reset.value["modelsPath"] != str(tmp_path / "elsewhere")

    @pytest.mark.asyncio
    async def test_logs_are_returned(self, control):
        await control.start_server("absent.gguf")
        await control.wipe_binaries()
        logs = await control.get_logs()
        assert any(e.message == "Binaries wiped" for e in logs.value)
