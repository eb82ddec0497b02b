from __future__ import annotations
from pathlib import Path
import logging
import sys

import psutil

logger = logging.getLogger(__name__)

SERVER_NAME = "llama-server"

def _exe(name: str) -> str:
    return name + ".exe" if sys.platform == "win32" else name

def server_executable(binaries_dir: Path) -> Path:
    """
    Locate llama-server inside the binaries folder.

    Tarball releases land flat; zip releases can nest it (e.g. build/bin),
    so fall back to a search. Existence is not enforced: if nothing is
    found the flat path is returned and the spawn reports the failure.
    """
    name = _exe(SERVER_NAME)
    flat = binaries_dir / name
    if flat.is_file():
        return flat
    if binaries_dir.is_dir():
        for p in sorted(binaries_dir.rglob(name)):
            if p.is_file():
                return p
    return flat

def kill_process_tree(pid: int) -> None:
    """
    Kill a process and all of its descendants.
    Used where there is no graceful terminate signal (Windows).
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return
    procs = parent.children(recursive=True) + [parent]
    for p in procs:
        try:
            p.kill()
        except psutil.NoSuchProcess:
            pass
    _, alive = psutil.wait_procs(procs, timeout=3)
    for p in alive:
        logger.warning("Process %s survived tree kill", p.pid)

def is_process_alive(pid: int) -> bool:
    try:
        proc = psutil.Process(pid)
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
