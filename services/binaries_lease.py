from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional
import logging

from interfaces.errors import ResourceBusy

logger = logging.getLogger(__name__)


class BinariesLease:
    """
    Single-holder lease over the binaries directory.

    Installs, wipes and the running server each hold it while they touch
    the directory. Any second claimant, including a second install, fails
    fast with ResourceBusy instead of waiting. All callers run on one event
    loop, so no OS lock is needed.
    """

    def __init__(self) -> None:
        self._holder: Optional[str] = None

    @property
    def holder(self) -> Optional[str]:
        return self._holder

    def acquire(self, holder: str) -> None:
        if self._holder is not None:
            # Not re-entrant: a second claim under the same name is still a conflict
            raise ResourceBusy(f"Binaries directory is in use by the {self._holder}")
        self._holder = holder
        logger.debug("Binaries lease acquired by %s", holder)

    def release(self, holder: str) -> None:
        if self._holder == holder:
            self._holder = None
            logger.debug("Binaries lease released by %s", holder)

    @contextmanager
    def held(self, holder: str) -> Iterator[None]:
        self.acquire(holder)
        try:
            yield
        finally:
            self.release(holder)
