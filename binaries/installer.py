from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional
import asyncio
import logging
import shutil

import httpx

from binaries.asset_matching import parse_version_tag
from binaries.downloader import download_file
from binaries.extractor import MIN_ARCHIVE_BYTES, extract_archive
from config.paths_config import PathsConfig
from interfaces.errors import ControlError, EmptyExtraction, FilesystemError, InvalidAssetName
from interfaces.events.events import DownloadProgress, EventSink
from interfaces.install.record import InstalledBinaryRecord
from interfaces.release.asset import ReleaseAsset
from services.binaries_lease import BinariesLease
from services.config_store import ConfigStore
from services.log_buffer import LogBuffer

logger = logging.getLogger(__name__)

LEASE_HOLDER = "installer"

ClientFactory = Callable[[], httpx.AsyncClient]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clear_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def _ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _check_asset_name(name: str) -> None:
    # The name becomes a file name under downloads/
    if not name or name in {".", ".."} or "/" in name or "\\" in name:
        raise InvalidAssetName(f"Asset name is not a plain file name: {name!r}")


class ArchiveInstaller:
    """
    Downloads a release asset, verifies it and unpacks it into the
    binaries folder.

    A primary install replaces whatever primary binary was installed before
    and records the new one; an auxiliary install (e.g. the CUDA runtime)
    is unpacked beside it and leaves the record alone.
    """

    def __init__(
        self,
        store: ConfigStore,
        paths: PathsConfig,
        logs: LogBuffer,
        events: EventSink,
        lease: BinariesLease,
        *,
        client_factory: ClientFactory,
        user_agent: str = "Llama-Control-Center",
        max_redirects: int = 10,
        min_archive_bytes: int = MIN_ARCHIVE_BYTES,
    ) -> None:
        self.store = store
        self.paths = paths
        self.logs = logs
        self.events = events
        self.lease = lease
        self.client_factory = client_factory
        self.user_agent = user_agent
        self.max_redirects = max_redirects
        self.min_archive_bytes = min_archive_bytes

    def installed_binary(self) -> Optional[InstalledBinaryRecord]:
        return self.store.installed_binary()

    async def install(self, asset: ReleaseAsset, is_auxiliary: bool = False) -> Optional[InstalledBinaryRecord]:
        with self.lease.held(LEASE_HOLDER):
            try:
                return await self._install(asset, is_auxiliary)
            except ControlError as e:
                self.logs.append(f"Installation of {asset.name} failed: {e.detail}", "error")
                self.events.emit(DownloadProgress(name=asset.name, progress=0, status="failed"))
                raise

    async def _install(self, asset: ReleaseAsset, is_auxiliary: bool) -> Optional[InstalledBinaryRecord]:
        config = self.store.load()
        binaries_dir = config.binaries_path
        _check_asset_name(asset.name)
        temp_file = self.paths.downloads_dir / asset.name

        try:
            self.logs.append(f"Downloading {asset.name}...", "info")
            await self._download(asset, temp_file)

            self.logs.append(f"Extracting {asset.name}...", "info")
            if not is_auxiliary and config.installed_binary is not None:
                # New primary release fully replaces the old one, never merges
                logger.info("Removing previous binary %s", config.installed_binary.name)
                await self._run_fs(_clear_dir, binaries_dir)
                self.store.set_installed_binary(None)
            else:
                await self._run_fs(_ensure_dir, binaries_dir)

            written = await asyncio.to_thread(
                extract_archive, temp_file, binaries_dir, min_bytes=self.min_archive_bytes
            )
            if not written or not any(binaries_dir.iterdir()):
                raise EmptyExtraction(f"{asset.name} produced no files in {binaries_dir}")
        finally:
            self._remove_temp(temp_file)

        record = None
        if not is_auxiliary:
            record = InstalledBinaryRecord(
                name=asset.name,
                version_tag=parse_version_tag(asset.name),
                installed_at=_now_iso(),
            )
            self.store.set_installed_binary(record)

        self.events.emit(DownloadProgress(name=asset.name, progress=100, status="completed"))
        self.logs.append(f"Installation of {asset.name} completed", "success")
        return record

    async def _download(self, asset: ReleaseAsset, dest: Path) -> int:
        def on_progress(percent: int) -> None:
            self.events.emit(DownloadProgress(name=asset.name, progress=percent, status="downloading"))

        async with self.client_factory() as client:
            return await download_file(
                client,
                asset.download_url,
                dest,
                on_progress=on_progress,
                declared_size=asset.size_bytes or None,
                user_agent=self.user_agent,
                max_redirects=self.max_redirects,
            )

    async def wipe(self) -> None:
        """Empty the binaries folder and forget the installed binary."""
        with self.lease.held(LEASE_HOLDER):
            binaries_dir = self.store.load().binaries_path
            await self._run_fs(_clear_dir, binaries_dir)
            self.store.set_installed_binary(None)
            self.logs.append("Binaries wiped", "info")

    @staticmethod
    async def _run_fs(fn: Callable[[Path], None], path: Path) -> None:
        try:
            await asyncio.to_thread(fn, path)
        except OSError as e:
            raise FilesystemError(f"Filesystem operation on {path} failed: {e}") from e

    @staticmethod
    def _remove_temp(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove temporary archive %s: %s", path, e)
