from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class InstalledBinaryRecord:
    name: str
    version_tag: str
    installed_at: str

    def to_dict(self) -> dict[str, Any]:
        # Key names match the persisted config.json layout
        return {"name": self.name, "version": self.version_tag, "date": self.installed_at}

    @staticmethod
    def from_dict(data: Optional[Mapping[str, Any]]) -> "InstalledBinaryRecord | None":
        if not data:
            return None
        return InstalledBinaryRecord(
            name=str(data.get("name", "")),
            version_tag=str(data.get("version", "unknown")),
            installed_at=str(data.get("date", "")),
        )
