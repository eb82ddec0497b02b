from __future__ import annotations

from collections import deque
from pathlib import Path
from typing import Optional
import json
import logging
import time

from interfaces.events.events import EventSink, LogEntry, LogType

logger = logging.getLogger(__name__)

_LEVELS = {"info": logging.INFO, "success": logging.INFO, "error": logging.WARNING}


class LogBuffer:
    """
    Bounded ring buffer of user-facing log entries.

    Every entry is published as a `server-log` event and mirrored to the
    module logger. The buffer is written to `log_file` every `flush_every`
    appends and on explicit `flush()`; write failures are logged and ignored.
    """

    def __init__(
        self,
        capacity: int = 1000,
        *,
        log_file: Optional[Path] = None,
        flush_every: int = 10,
        events: Optional[EventSink] = None,
    ) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self.log_file = log_file
        self.flush_every = flush_every
        self.events = events
        self._appended = 0

    def append(self, message: str, type: LogType = "info") -> LogEntry:
        entry = LogEntry(timestamp=int(time.time() * 1000), message=message, type=type)
        self._entries.append(entry)
        self._appended += 1
        logger.log(_LEVELS.get(type, logging.INFO), "%s", message)

        if self.events is not None:
            self.events.emit(entry)

        if self._appended % self.flush_every == 0:
            self.flush()
        return entry

    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def flush(self) -> None:
        if self.log_file is None:
            return
        payload = json.dumps([e.to_dict() for e in self._entries])
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            self.log_file.write_text(payload, encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write log file %s: %s", self.log_file, e)
