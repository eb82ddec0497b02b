from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ServerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(frozen=True)
class ServerStatus:
    running: bool
    model: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"running": self.running, "model": self.model}
