from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class ReleaseAsset:
    name: str
    download_url: str
    size_bytes: int
    created_at: str
    id: int | str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.download_url,
            "size": self.size_bytes,
            "created": self.created_at,
            "id": self.id,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ReleaseAsset":
        """
        Build an asset from the shape the command boundary hands out
        (`url`/`size`/`created`) or from the field names themselves.
        """
        return ReleaseAsset(
            name=data["name"],
            download_url=data.get("url", data.get("download_url")),
            size_bytes=int(data.get("size", data.get("size_bytes", 0)) or 0),
            created_at=data.get("created", data.get("created_at", "")),
            id=data.get("id", ""),
        )


@dataclass(frozen=True)
class Release:
    version_tag: str
    assets: tuple[ReleaseAsset, ...] = field(default_factory=tuple)

    def find(self, name: str) -> ReleaseAsset | None:
        return next((a for a in self.assets if a.name == name), None)
