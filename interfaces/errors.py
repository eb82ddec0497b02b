from __future__ import annotations

from typing import Optional


class ControlError(Exception):
    """
    Base class for every failure the control center reports to its callers.

    `kind` is a stable identifier the presentation layer can branch on;
    `category` groups kinds by the remediation the user is offered.
    The message is for display only.
    """
    kind: str = "control_error"
    category: str = "internal"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.kind)
        self.detail = detail or self.kind


# ---------- Release catalog ----------

class CatalogUnavailable(ControlError):
    kind = "catalog_unavailable"
    category = "network"


class CatalogParseError(ControlError):
    kind = "catalog_parse_error"
    category = "network"


# ---------- Archive installer ----------

class DownloadFailed(ControlError):
    kind = "download_failed"
    category = "network"

    def __init__(self, detail: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(detail or f"Download failed with HTTP {status_code}")
        self.status_code = status_code


class IncompleteDownload(ControlError):
    kind = "incomplete_download"
    category = "corrupt"

    def __init__(self, received: int, expected: int) -> None:
        super().__init__(f"Download incomplete: received {received} of {expected} bytes")
        self.received = received
        self.expected = expected


class ArchiveTooSmall(ControlError):
    kind = "archive_too_small"
    category = "corrupt"


class UnsupportedArchiveFormat(ControlError):
    kind = "unsupported_archive_format"
    category = "corrupt"


class InvalidAssetName(ControlError):
    kind = "invalid_asset_name"
    category = "corrupt"


class CorruptArchive(ControlError):
    kind = "corrupt_archive"
    category = "corrupt"


class EmptyExtraction(ControlError):
    kind = "empty_extraction"
    category = "corrupt"


class FilesystemError(ControlError):
    kind = "filesystem_error"
    category = "filesystem"


# ---------- Process supervisor ----------

class ModelNotFound(ControlError):
    kind = "model_not_found"
    category = "process"


class SpawnFailed(ControlError):
    kind = "spawn_failed"
    category = "process"


class ProcessTerminationTimeout(ControlError):
    kind = "process_termination_timeout"
    category = "process"


class InvalidRunParameters(ControlError):
    kind = "invalid_run_parameters"
    category = "process"


# ---------- Shared resources ----------

class ResourceBusy(ControlError):
    kind = "resource_busy"
    category = "busy"


class ConfigIOError(ControlError):
    kind = "config_io_error"
    category = "config"
