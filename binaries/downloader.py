from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urljoin
import logging

import httpx

from interfaces.errors import DownloadFailed, FilesystemError, IncompleteDownload

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

REDIRECT_CODES = {301, 302, 303, 307, 308}


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove partial download %s: %s", path, e)


async def download_file(
    client: httpx.AsyncClient,
    url: str,
    dest: Path,
    *,
    on_progress: Optional[ProgressCallback] = None,
    declared_size: Optional[int] = None,
    user_agent: str = "Llama-Control-Center",
    max_redirects: int = 10,
) -> int:
    """
    Stream `url` into `dest` and return the number of bytes written.

    Redirects are followed by hand so every hop restarts the byte count
    against the final resource. Progress is the floor percentage of the
    final response's Content-Length (or `declared_size` when the header is
    absent), reported once per received chunk.

    On a short read the partial file is deleted and IncompleteDownload raised.
    """
    headers = {"User-Agent": user_agent}
    for _ in range(max_redirects + 1):
        try:
            async with client.stream("GET", url, headers=headers) as response:
                if response.status_code in REDIRECT_CODES:
                    location = response.headers.get("location")
                    if not location:
                        raise DownloadFailed(
                            f"Redirect {response.status_code} without Location from {url}",
                            status_code=response.status_code,
                        )
                    url = urljoin(str(response.url), location)
                    logger.debug("Following redirect to %s", url)
                    continue

                if not 200 <= response.status_code < 300:
                    raise DownloadFailed(
                        f"Download of {url} failed with HTTP {response.status_code}",
                        status_code=response.status_code,
                    )

                header_size = response.headers.get("content-length")
                expected = int(header_size) if header_size and header_size.isdigit() else None
                total = expected or declared_size
                received = await _write_body(response, dest, expected, total, on_progress)
        except httpx.HTTPError as e:
            _remove(dest)
            raise DownloadFailed(f"Network error while downloading {url}: {e}") from e
        except DownloadFailed:
            _remove(dest)
            raise

        if expected is not None and received != expected:
            _remove(dest)
            raise IncompleteDownload(received=received, expected=expected)
        logger.info("Downloaded %s (%d bytes)", dest.name, received)
        return received

    _remove(dest)
    raise DownloadFailed(f"Too many redirects while downloading {url}")


async def _write_body(
    response: httpx.Response,
    dest: Path,
    expected: Optional[int],
    total: Optional[int],
    on_progress: Optional[ProgressCallback],
) -> int:
    received = 0
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with dest.open("wb") as fh:
            # Raw bytes: Content-Length counts the bytes on the wire
            async for chunk in response.aiter_raw():
                fh.write(chunk)
                received += len(chunk)
                if total and on_progress is not None:
                    on_progress(min(100, received * 100 // total))
    except httpx.RemoteProtocolError as e:
        # The peer closed the connection before sending the declared body
        if expected is not None and received < expected:
            _remove(dest)
            raise IncompleteDownload(received=received, expected=expected) from e
        raise
    except OSError as e:
        _remove(dest)
        raise FilesystemError(f"Could not write {dest}: {e}") from e
    return received
