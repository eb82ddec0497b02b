"""Tests for run parameter resolution and llama-server argv."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from interfaces.errors import InvalidRunParameters
from server.launch_config import build_server_args, resolve_run_parameters


class TestResolveRunParameters:
    def test_builtin_defaults(self):
        run = resolve_run_parameters("m.gguf")
        assert run.port == 8080
        assert run.host == "127.0.0.1"
        assert run.context_size == 4096
        assert run.gpu_layers == 0
        assert run.batch_size == 512
        assert run.threads >= 1
        assert run.flash_attention is False
        assert run.api_key is None

    def test_layering_stored_then_caller(self):
        run = resolve_run_parameters(
            "m.gguf",
            {"port": 9001, "flashAttn": True},
            defaults={"ctxSize": 8192, "port": 9000, "gpuLayers": 33},
        )
        assert run.port == 9001
        assert run.context_size == 8192
        assert run.gpu_layers == 33
        assert run.flash_attention is True

    def test_none_falls_back(self):
        run = resolve_run_parameters("m.gguf", {"port": None}, defaults={"port": 9000})
        assert run.port == 9000

    def test_unknown_caller_key_rejected(self):
        with pytest.raises(InvalidRunParameters):
            resolve_run_parameters("m.gguf", {"temperature": 0.2})

    def test_unknown_stored_key_ignored(self):
        run = resolve_run_parameters("m.gguf", defaults={"legacyOption": 1})
        assert run.port == 8080

    @pytest.mark.parametrize("params", [
        {"port": "8080"},
        {"port": 70000},
        {"context_size": 0},
        {"gpu_layers": -1},
        {"mlock": "yes"},
    ])
    def test_invalid_values(self, params):
        with pytest.raises(InvalidRunParameters):
            resolve_run_parameters("m.gguf", params)


class TestBuildServerArgs:
    def test_required_flags_in_order(self):
        run = resolve_run_parameters("m.gguf", {"threads": 4})
        cmd = build_server_args(Path("/bin/llama-server"), Path("/models/m.gguf"), run)
        assert cmd == [
            str(Path("/bin/llama-server")),
            "-m", str(Path("/models/m.gguf")),
            "--port", "8080",
            "--host", "127.0.0.1",
            "-c", "4096",
            "-ngl", "0",
            "-t", "4",
            "-b", "512",
        ]

    def test_optional_flags(self):
        run = resolve_run_parameters(
            "m.gguf",
            {"threads": 4, "flash_attention": True, "mlock": True, "no_mmap": True, "api_key": "secret"},
        )
        cmd = build_server_args(Path("llama-server"), Path("m.gguf"), run)
        tail = cmd[cmd.index("-b") + 2:]
        assert tail == ["--api-key", "secret", "--flash-attn", "on", "--mlock", "--no-mmap"]

    def test_api_key_hidden_from_repr(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="server.launch_config"):
            run = resolve_run_parameters("m.gguf", {"api_key": "hunter2"})
        assert run.api_key == "hunter2"
        assert "hunter2" not in repr(run)
        assert "hunter2" not in caplog.text
