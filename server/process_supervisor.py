from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
import asyncio
import logging
import os
import subprocess

from helpers.server_binary import is_process_alive, kill_process_tree, server_executable
from interfaces.errors import ModelNotFound, ProcessTerminationTimeout, SpawnFailed
from interfaces.events.events import EventSink, LogType, ServerStatusChanged
from interfaces.server.status import ServerState, ServerStatus
from server.launch_config import build_server_args, resolve_run_parameters
from services.binaries_lease import BinariesLease
from services.config_store import ConfigStore
from services.log_buffer import LogBuffer
from services.model_library import resolve_model_path

logger = logging.getLogger(__name__)

LEASE_HOLDER = "server"
STREAM_LIMIT = 1024 * 1024


@dataclass
class _ServerHandle:
    process: asyncio.subprocess.Process
    model_name: str
    stop_requested: bool = False
    pumps: list[asyncio.Task] = field(default_factory=list)
    watcher: Optional[asyncio.Task] = None
    announcer: Optional[asyncio.Task] = None

    @property
    def pid(self) -> int:
        return self.process.pid

    def is_alive(self) -> bool:
        return self.process.returncode is None


def _masked(cmd: list[str]) -> str:
    out = list(cmd)
    for i, arg in enumerate(out[:-1]):
        if arg == "--api-key":
            out[i + 1] = "***"
    return " ".join(out)


class ProcessSupervisor:
    """
    Owns the single llama-server child process.

    stopped -> starting -> running -> stopping -> stopped, plus running ->
    stopped when the child exits on its own. The handle never leaves this
    class; callers see it only through start/stop/status.
    """

    def __init__(
        self,
        store: ConfigStore,
        logs: LogBuffer,
        events: EventSink,
        lease: BinariesLease,
        *,
        settle_delay_s: float = 1.0,
        stop_grace_s: float = 5.0,
        kill_timeout_s: float = 5.0,
    ) -> None:
        self.store = store
        self.logs = logs
        self.events = events
        self.lease = lease
        self.settle_delay_s = settle_delay_s
        self.stop_grace_s = stop_grace_s
        self.kill_timeout_s = kill_timeout_s

        self._handle: Optional[_ServerHandle] = None
        self._state = ServerState.STOPPED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ServerState:
        return self._state

    def status(self) -> ServerStatus:
        handle = self._handle
        if handle is None:
            return ServerStatus(running=False, model=None)
        return ServerStatus(running=True, model=handle.model_name)

    async def start(self, model_name: str, params: Optional[Mapping[str, Any]] = None) -> None:
        async with self._lock:
            config = self.store.load()
            run = resolve_run_parameters(model_name, params, defaults=config.default_params)
            model_path = resolve_model_path(config.models_path, model_name)
            if model_path is None:
                raise ModelNotFound(f"Model file not found: {config.models_path / model_name}")

            if self._handle is not None:
                await self._stop_locked()

            executable = server_executable(config.binaries_path)
            cmd = build_server_args(executable, model_path, run)

            self.lease.acquire(LEASE_HOLDER)
            self._state = ServerState.STARTING
            self.logs.append(f"Starting server with model: {model_name}", "info")
            self.logs.append(f"Args: {_masked(cmd[1:])}", "info")

            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    cwd=str(config.binaries_path),
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    limit=STREAM_LIMIT,
                )
            except OSError as e:
                self.lease.release(LEASE_HOLDER)
                self._state = ServerState.STOPPED
                self.logs.append(f"Failed to start {executable}: {e}", "error")
                raise SpawnFailed(f"Could not start {executable}: {e}") from e

            handle = _ServerHandle(process=process, model_name=model_name)
            self._handle = handle
            self._state = ServerState.RUNNING
            logger.info("llama-server started (pid %s)", process.pid)

            handle.pumps = [
                asyncio.create_task(self._pump(process.stdout, "info")),
                asyncio.create_task(self._pump(process.stderr, "error")),
            ]
            handle.watcher = asyncio.create_task(self._watch(handle))
            handle.announcer = asyncio.create_task(self._announce_running(handle))

    async def stop(self) -> None:
        async with self._lock:
            await self._stop_locked()

    async def shutdown(self) -> None:
        """Stop the server (if any) and persist the log buffer."""
        try:
            await self.stop()
        finally:
            self.logs.flush()

    async def _stop_locked(self) -> None:
        handle = self._handle
        if handle is None:
            return

        assert handle.watcher is not None
        handle.stop_requested = True
        self._state = ServerState.STOPPING
        self.logs.append("Stopping server...", "info")

        if handle.is_alive():
            await self._terminate(handle)
            if await self._wait_for_exit(handle, self.stop_grace_s):
                return
            self.logs.append(
                f"Server did not exit within {self.stop_grace_s:g}s; killing it", "error"
            )
            await self._kill(handle)

        if not await self._wait_for_exit(handle, self.kill_timeout_s):
            handle.stop_requested = False
            self._state = ServerState.RUNNING
            raise ProcessTerminationTimeout(f"llama-server (pid {handle.pid}) did not exit after being killed")

    @staticmethod
    async def _wait_for_exit(handle: _ServerHandle, timeout: float) -> bool:
        assert handle.watcher is not None
        try:
            await asyncio.wait_for(asyncio.shield(handle.watcher), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    @staticmethod
    async def _terminate(handle: _ServerHandle) -> None:
        if os.name == "nt":
            # No SIGTERM on Windows: take down the whole tree
            await asyncio.to_thread(kill_process_tree, handle.pid)
            return
        try:
            handle.process.terminate()
        except ProcessLookupError:
            pass

    @staticmethod
    async def _kill(handle: _ServerHandle) -> None:
        if os.name == "nt":
            await asyncio.to_thread(kill_process_tree, handle.pid)
            return
        try:
            handle.process.kill()
        except ProcessLookupError:
            pass

    async def _announce_running(self, handle: _ServerHandle) -> None:
        await asyncio.sleep(self.settle_delay_s)
        # A child that died inside the settle window is reported by the exit watcher instead
        if self._handle is not handle or not handle.is_alive() or not is_process_alive(handle.pid):
            logger.info("llama-server exited during the settle delay; not reporting it as running")
            return
        self.events.emit(ServerStatusChanged(running=True, model=handle.model_name))

    async def _pump(self, stream: Optional[asyncio.StreamReader], log_type: LogType) -> None:
        if stream is None:
            return
        while True:
            try:
                raw = await stream.readline()
            except ValueError:
                self.logs.append("Server output line too long; truncated", "error")
                continue
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").rstrip()
            if line:
                self.logs.append(line, log_type)

    async def _watch(self, handle: _ServerHandle) -> None:
        code = await handle.process.wait()

        # Grandchildren can keep the pipes open; don't wait on them forever
        _, pending = await asyncio.wait(handle.pumps, timeout=1.0)
        for task in pending:
            task.cancel()
        if handle.announcer is not None and not handle.announcer.done():
            handle.announcer.cancel()

        if self._handle is handle:
            self._handle = None
            self._state = ServerState.STOPPED
        self.lease.release(LEASE_HOLDER)

        if handle.stop_requested:
            self.logs.append(f"Server stopped (exit code {code})", "info")
        else:
            self.logs.append(
                f"Server process exited with code {code}", "info" if code == 0 else "error"
            )
        self.events.emit(ServerStatusChanged(running=False, model=None))
