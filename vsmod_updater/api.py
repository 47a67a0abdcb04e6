"""Vintage Story mod database API client."""

import time
from typing import Any

import requests

from . import __version__
from .models import RemoteRelease

HOME_URL = "https://mods.vintagestory.at"
MOD_API_URL = "https://mods.vintagestory.at/api/mod"
DOWNLOAD_URL = f"{HOME_URL}/download"


class TransportError(Exception):
    """Base exception for mod database request failures."""

    pass


class ModNotFound(TransportError):
    """Raised when the mod database has no entry for a mod id."""

    pass


class MalformedRemoteResponse(TransportError):
    """Raised when a response does not have the expected shape."""

    pass


def parse_release(data: Any) -> RemoteRelease:
    """Parse one entry of a mod's "releases" array."""
    if not isinstance(data, dict):
        raise MalformedRemoteResponse(f"Release entry is not an object: {data!r}")

    version = data.get("modversion")
    file_id = data.get("fileid")
    if version is None or file_id is None:
        raise MalformedRemoteResponse(
            f"Release entry missing modversion or fileid: {data!r}"
        )
    try:
        file_id = int(file_id)
    except (TypeError, ValueError) as e:
        raise MalformedRemoteResponse(f"Invalid fileid: {file_id!r}") from e

    tags = data.get("tags") or []
    if not isinstance(tags, list):
        raise MalformedRemoteResponse(f"Release tags are not a list: {tags!r}")

    release_id = data.get("releaseid")
    return RemoteRelease(
        version=str(version),
        file_id=file_id,
        tags=[str(t) for t in tags if t is not None],
        filename=str(data.get("filename") or ""),
        release_id=release_id if isinstance(release_id, int) else None,
    )


class ModDBAPI:
    """Client for the public mod database REST API."""

    def __init__(self, api_url: str = MOD_API_URL, download_url: str = DOWNLOAD_URL):
        self.api_url = api_url.rstrip("/")
        self.download_url = download_url
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": f"vsmod-updater/{__version__}"})
        self._last_request_time = 0.0
        self._min_request_interval = 0.25  # be polite to the mod database

    def _rate_limit_wait(self) -> None:
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.time()

    def _handle_response(self, response: requests.Response, what: str) -> dict[str, Any]:
        """Handle API response and raise appropriate errors."""
        if response.status_code == 404:
            raise ModNotFound(f"Not found on mod database: {what}")
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise TransportError(f"Request for {what} failed: {e}") from e
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedRemoteResponse(f"Invalid JSON for {what}: {e}") from e
        if not isinstance(data, dict):
            raise MalformedRemoteResponse(f"Unexpected response for {what}: {data!r}")

        # The API reports lookups of unknown mods in the body
        status = str(data.get("statuscode", "200"))
        if status == "404":
            raise ModNotFound(f"Not found on mod database: {what}")
        if status != "200":
            raise TransportError(f"Mod database returned status {status} for {what}")
        return data

    def get_mod(self, mod_id: str) -> dict[str, Any]:
        """Get the raw mod entry for a mod id."""
        self._rate_limit_wait()
        try:
            response = self.session.get(f"{self.api_url}/{mod_id}")
        except requests.RequestException as e:
            raise TransportError(f"Request for {mod_id} failed: {e}") from e
        data = self._handle_response(response, mod_id)

        mod = data.get("mod")
        if not isinstance(mod, dict):
            raise MalformedRemoteResponse(f"Response for {mod_id} has no mod entry")
        return mod

    def get_releases(self, mod_id: str) -> list[RemoteRelease]:
        """
        Get the published releases for a mod, newest first.

        The order is kept exactly as the API returns it.
        """
        mod = self.get_mod(mod_id)
        releases = mod.get("releases")
        if not isinstance(releases, list):
            raise MalformedRemoteResponse(f"Response for {mod_id} has no release list")
        return [parse_release(r) for r in releases]

    def payload_url(self, file_id: int) -> str:
        return f"{self.download_url}?fileid={file_id}"
