from __future__ import annotations

from pathlib import Path, PurePosixPath
import gzip
import logging
import os
import tarfile
import zipfile
import zlib

from interfaces.errors import ArchiveTooSmall, CorruptArchive, FilesystemError, UnsupportedArchiveFormat

logger = logging.getLogger(__name__)

MIN_ARCHIVE_BYTES = 100


def archive_format(name: str) -> str:
    lower = name.lower()
    if lower.endswith(".zip"):
        return "zip"
    if lower.endswith((".tar.gz", ".tgz")):
        return "tar.gz"
    raise UnsupportedArchiveFormat(f"Unsupported archive format: {name}")


def extract_archive(archive: Path, dest: Path, *, min_bytes: int = MIN_ARCHIVE_BYTES) -> list[Path]:
    """
    Extract `archive` into `dest` and return the files written.

    .zip keeps its directory tree; .tar.gz drops the first path component so
    a wrapping version folder still lands flat in `dest`. Archives smaller
    than `min_bytes` are rejected before any reader touches them.
    """
    fmt = archive_format(archive.name)
    size = archive.stat().st_size
    if size < min_bytes:
        raise ArchiveTooSmall(f"{archive.name} is only {size} bytes; the download is likely corrupt")

    dest.mkdir(parents=True, exist_ok=True)
    try:
        if fmt == "zip":
            written = _extract_zip(archive, dest)
        else:
            written = _extract_tar_gz(archive, dest)
    except (zipfile.BadZipFile, tarfile.TarError, zlib.error, gzip.BadGzipFile, EOFError) as e:
        # BadGzipFile is an OSError; it must be caught before the filesystem branch
        raise CorruptArchive(f"{archive.name} could not be read: {e}") from e
    except OSError as e:
        raise FilesystemError(f"Extracting {archive.name} into {dest} failed: {e}") from e

    logger.info("Extracted %d files from %s", len(written), archive.name)
    return written


def _safe_target(dest: Path, member_name: str) -> Path:
    target = (dest / member_name).resolve()
    root = dest.resolve()
    if target != root and root not in target.parents:
        raise CorruptArchive(f"Archive member escapes the target folder: {member_name}")
    return target


def _extract_zip(archive: Path, dest: Path) -> list[Path]:
    written: list[Path] = []
    with zipfile.ZipFile(archive) as zf:
        bad = zf.testzip()
        if bad is not None:
            raise CorruptArchive(f"{archive.name} has a corrupt member: {bad}")
        for info in zf.infolist():
            target = _safe_target(dest, info.filename)
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            zf.extract(info, dest)
            # zipfile drops permission bits; executables need them back
            mode = (info.external_attr >> 16) & 0o777
            if mode and os.name != "nt":
                os.chmod(target, mode)
            written.append(target)
    return written


def _strip_first_component(name: str) -> str:
    parts = PurePosixPath(name).parts
    return str(PurePosixPath(*parts[1:])) if len(parts) > 1 else ""


def _extract_tar_gz(archive: Path, dest: Path) -> list[Path]:
    written: list[Path] = []
    with tarfile.open(archive, "r:gz") as tf:
        for member in tf.getmembers():
            stripped = _strip_first_component(member.name)
            if not stripped:
                continue
            _safe_target(dest, stripped)
            member.name = stripped
            if member.islnk():
                member.linkname = _strip_first_component(member.linkname)
            tf.extract(member, dest, filter="data")
            if member.isfile() or member.issym() or member.islnk():
                written.append(dest / stripped)
    return written
