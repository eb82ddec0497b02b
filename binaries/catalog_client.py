from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import requests

from config.control_config import DEFAULT_RELEASE_API_URL, DEFAULT_USER_AGENT
from interfaces.errors import CatalogParseError, CatalogUnavailable
from interfaces.release.asset import Release, ReleaseAsset

logger = logging.getLogger(__name__)
JSONDict = Dict[str, Any]

@dataclass
class ReleaseCatalogClient:
    """
    Reads the latest published llama.cpp release from the GitHub releases API.
    One request per call; retrying is left to the caller.
    """
    api_url: str = DEFAULT_RELEASE_API_URL
    user_agent: str = DEFAULT_USER_AGENT
    github_token: Optional[str] = None
    timeout_s: float = 30.0
    session: Optional[requests.Session] = None

    def _headers(self) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/vnd.github+json",
        }
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        return headers

    def fetch_latest_release(self) -> Release:
        http = self.session or requests
        try:
            r = http.get(self.api_url, headers=self._headers(), timeout=self.timeout_s)
        except requests.RequestException as e:
            raise CatalogUnavailable(f"Release catalog unreachable: {e}") from e
        if r.status_code != 200:
            raise CatalogUnavailable(f"Release catalog HTTP {r.status_code}: {r.text[:500]}")

        try:
            data = r.json()
        except ValueError as e:
            raise CatalogParseError(f"Release catalog returned invalid JSON: {e}") from e

        release = parse_release(data)
        logger.info("Latest release %s with %d assets", release.version_tag, len(release.assets))
        return release


def parse_release(data: Any) -> Release:
    if not isinstance(data, dict):
        raise CatalogParseError("Release payload is not a JSON object")
    try:
        tag = data["tag_name"]
        raw_assets = data["assets"]
        assets = tuple(_parse_asset(a) for a in raw_assets)
    except (KeyError, TypeError, ValueError) as e:
        raise CatalogParseError(f"Release payload is missing fields: {e}") from e
    if not isinstance(tag, str):
        raise CatalogParseError("Release tag_name is not a string")
    return Release(version_tag=tag, assets=assets)


def _parse_asset(raw: JSONDict) -> ReleaseAsset:
    return ReleaseAsset(
        name=str(raw["name"]),
        download_url=str(raw["browser_download_url"]),
        size_bytes=int(raw["size"]),
        created_at=str(raw.get("created_at") or ""),
        id=raw["id"],
    )
