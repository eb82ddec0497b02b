"""Shared test fixtures for the control center."""

from __future__ import annotations

import io
import tarfile
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest

from config.paths_config import PathsConfig
from interfaces.events.events import Event
from services.binaries_lease import BinariesLease
from services.config_store import ConfigStore
from services.event_bus import EventBus
from services.log_buffer import LogBuffer


class EventRecorder:
    """Collects every emitted event for later assertions."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    def on(self, channel: str) -> list[Event]:
        return [e for e in self.events if e.channel == channel]


@pytest.fixture
def paths(tmp_path: Path) -> PathsConfig:
    """Provide a PathsConfig rooted in a temp working directory."""
    cfg = PathsConfig.from_strings(tmp_path / "work")
    cfg.ensure_dirs()
    return cfg


@pytest.fixture
def store(paths: PathsConfig) -> ConfigStore:
    return ConfigStore(paths)


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(events: EventBus) -> EventRecorder:
    rec = EventRecorder()
    events.subscribe(rec)
    return rec


@pytest.fixture
def logs(paths: PathsConfig, events: EventBus) -> LogBuffer:
    return LogBuffer(capacity=1000, log_file=paths.log_file, flush_every=10, events=events)


@pytest.fixture
def lease() -> BinariesLease:
    return BinariesLease()


# ---------------------------------------------------------------------------
# Archive factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_zip() -> Callable[..., bytes]:
    """Factory fixture: build zip bytes from {member name: content}."""

    def _factory(members: dict[str, bytes], mode: int = 0o755) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, data in members.items():
                info = zipfile.ZipInfo(name, date_time=(2024, 1, 1, 0, 0, 0))
                info.external_attr = (0o100000 | mode) << 16
                info.compress_type = zipfile.ZIP_DEFLATED
                zf.writestr(info, data)
        return buf.getvalue()

    return _factory


@pytest.fixture
def make_tar_gz() -> Callable[..., bytes]:
    """Factory fixture: build .tar.gz bytes from {member name: content}."""

    def _factory(members: dict[str, bytes]) -> bytes:
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w:gz") as tf:
            for name, data in members.items():
                info = tarfile.TarInfo(name)
                info.size = len(data)
                info.mode = 0o755
                tf.addfile(info, io.BytesIO(data))
        return buf.getvalue()

    return _factory
