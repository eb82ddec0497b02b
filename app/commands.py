from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, Sequence, TypeVar
import asyncio
import logging

from binaries.asset_matching import find_auxiliary_asset
from binaries.catalog_client import ReleaseCatalogClient
from binaries.installer import ArchiveInstaller
from interfaces.errors import ControlError, FilesystemError
from interfaces.install.record import InstalledBinaryRecord
from interfaces.model.model_file import ModelFile
from interfaces.release.asset import Release, ReleaseAsset
from interfaces.server.status import ServerStatus
from interfaces.events.events import LogEntry
from server.process_supervisor import ProcessSupervisor
from services.config_store import ConfigStore
from services.event_bus import EventBus
from services.log_buffer import LogBuffer
from services.model_library import list_models

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CommandError:
    kind: str
    category: str
    detail: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "category": self.category, "detail": self.detail}


@dataclass(frozen=True)
class CommandResult(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[CommandError] = None

    @staticmethod
    def success(value: Optional[T] = None) -> "CommandResult[T]":
        return CommandResult(ok=True, value=value)

    @staticmethod
    def failure(err: ControlError) -> "CommandResult[T]":
        return CommandResult(ok=False, error=CommandError(err.kind, err.category, err.detail))


async def _run(name: str, op: Callable[[], Awaitable[T]]) -> CommandResult[T]:
    try:
        return CommandResult.success(await op())
    except ControlError as e:
        logger.info("Command %s failed: %s (%s)", name, e.detail, e.kind)
        return CommandResult.failure(e)
    except OSError as e:
        logger.warning("Command %s hit a filesystem error: %s", name, e)
        return CommandResult.failure(FilesystemError(str(e)))


@dataclass
class ControlCenter:
    """
    Command boundary used by the presentation layer.

    Every command returns a CommandResult instead of raising; the error kind
    tells the caller which remediation to offer. Asynchronous progress, log
    lines and status changes arrive separately through `events`, and may do
    so before or after the command's own result.
    """
    catalog: ReleaseCatalogClient
    installer: ArchiveInstaller
    supervisor: ProcessSupervisor
    store: ConfigStore
    logs: LogBuffer
    events: EventBus
    model_extension: str = ".gguf"

    # ---------- Binaries ----------

    async def fetch_releases(self) -> CommandResult[Release]:
        return await _run("fetch_releases", lambda: asyncio.to_thread(self.catalog.fetch_latest_release))

    async def install_binary(
        self, asset: ReleaseAsset | Mapping[str, Any], is_auxiliary: bool = False
    ) -> CommandResult[InstalledBinaryRecord]:
        if not isinstance(asset, ReleaseAsset):
            asset = ReleaseAsset.from_dict(asset)
        return await _run("install_binary", lambda: self.installer.install(asset, is_auxiliary))

    async def get_installed_binary(self) -> CommandResult[InstalledBinaryRecord]:
        async def op() -> Optional[InstalledBinaryRecord]:
            return self.installer.installed_binary()

        return await _run("get_installed_binary", op)

    async def wipe_binaries(self) -> CommandResult[None]:
        return await _run("wipe_binaries", self.installer.wipe)

    def find_auxiliary_asset(
        self, primary: ReleaseAsset, assets: Sequence[ReleaseAsset]
    ) -> Optional[ReleaseAsset]:
        return find_auxiliary_asset(primary, assets)

    # ---------- Models ----------

    async def list_models(self) -> CommandResult[list[ModelFile]]:
        async def op() -> list[ModelFile]:
            models_dir = self.store.load().models_path
            return await asyncio.to_thread(list_models, models_dir, self.model_extension)

        return await _run("list_models", op)

    # ---------- Server ----------

    async def start_server(
        self, model_name: str, params: Optional[Mapping[str, Any]] = None
    ) -> CommandResult[None]:
        return await _run("start_server", lambda: self.supervisor.start(model_name, params))

    async def stop_server(self) -> CommandResult[None]:
        return await _run("stop_server", self.supervisor.stop)

    async def get_server_status(self) -> CommandResult[ServerStatus]:
        async def op() -> ServerStatus:
            return self.supervisor.status()

        return await _run("get_server_status", op)

    async def get_logs(self) -> CommandResult[list[LogEntry]]:
        async def op() -> list[LogEntry]:
            return self.logs.entries()

        return await _run("get_logs", op)

    # ---------- Configuration ----------

    async def get_config(self) -> CommandResult[dict[str, Any]]:
        async def op() -> dict[str, Any]:
            return self.store.load().to_dict()

        return await _run("get_config", op)

    async def update_config(self, changes: Mapping[str, Any]) -> CommandResult[dict[str, Any]]:
        async def op() -> dict[str, Any]:
            return self.store.update(changes).to_dict()

        return await _run("update_config", op)

    async def reset_config(self) -> CommandResult[dict[str, Any]]:
        async def op() -> dict[str, Any]:
            return self.store.reset().to_dict()

        return await _run("reset_config", op)

    async def shutdown(self) -> None:
        await self.supervisor.shutdown()
