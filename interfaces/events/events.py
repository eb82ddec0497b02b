from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Literal, Optional, Protocol, Union

SERVER_STATUS = "server-status"
SERVER_LOG = "server-log"
DOWNLOAD_PROGRESS = "download-progress"

LogType = Literal["info", "error", "success"]
ProgressStatus = Literal["downloading", "completed", "failed"]


@dataclass(frozen=True)
class LogEntry:
    channel: ClassVar[str] = SERVER_LOG

    timestamp: int  # epoch milliseconds
    message: str
    type: LogType = "info"

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "message": self.message, "type": self.type}


@dataclass(frozen=True)
class DownloadProgress:
    channel: ClassVar[str] = DOWNLOAD_PROGRESS

    name: str
    progress: int
    status: ProgressStatus

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "progress": self.progress, "status": self.status}


@dataclass(frozen=True)
class ServerStatusChanged:
    channel: ClassVar[str] = SERVER_STATUS

    running: bool
    model: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"running": self.running, "model": self.model}


Event = Union[LogEntry, DownloadProgress, ServerStatusChanged]


class EventSink(Protocol):
    def emit(self, event: Event) -> None:
        ...
