import json
import zipfile
from pathlib import Path

import pytest
import requests

from vsmod_updater.config import Config, MissingVersionPolicy, Policy
from vsmod_updater.models import RemoteRelease


def write_package(directory: Path, filename: str, modinfo: dict | str | None) -> Path:
    """Create a mod zip, optionally with a modinfo.json (dict or raw text)."""
    path = directory / filename
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("assets/readme.txt", "hello")
        if modinfo is not None:
            text = modinfo if isinstance(modinfo, str) else json.dumps(modinfo)
            zf.writestr("modinfo.json", text)
    return path


def make_policy(**kwargs) -> Policy:
    kwargs.setdefault("game_version", "1.19.0")
    return Policy(**kwargs)


def release(version: str, *tags: str, file_id: int = 1, filename: str = "") -> RemoteRelease:
    return RemoteRelease(version=version, file_id=file_id, tags=list(tags), filename=filename)


class FakeResponse:
    def __init__(self, content: bytes = b"", status_code: int = 200, json_data=None):
        self.content = content
        self.status_code = status_code
        self._json = json_data
        self.headers = {"content-length": str(len(content))}
        self.url = "https://example.invalid"
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.closed = True

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size=8192):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i : i + chunk_size]

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeSession:
    """Serves download payloads keyed by file id."""

    def __init__(self, payloads: dict[int, bytes], failing: set[int] | None = None):
        self.payloads = payloads
        self.failing = failing or set()
        self.urls: list[str] = []

    def get(self, url, stream=False):
        self.urls.append(url)
        file_id = int(url.rsplit("=", 1)[1])
        if file_id in self.failing:
            raise requests.ConnectionError("connection reset")
        return FakeResponse(self.payloads.get(file_id, b""))


class FakeAPI:
    """Stands in for ModDBAPI: releases per mod id, payload bytes per file id."""

    def __init__(self, releases=None, payloads=None, errors=None, failing_downloads=None):
        self.releases = releases or {}
        self.errors = errors or {}
        self.requested: list[str] = []
        self.session = FakeSession(payloads or {}, failing_downloads)

    def get_releases(self, mod_id):
        self.requested.append(mod_id)
        if mod_id in self.errors:
            raise self.errors[mod_id]
        return self.releases[mod_id]

    def payload_url(self, file_id):
        return f"https://example.invalid/download?fileid={file_id}"


@pytest.fixture
def mods_dir(tmp_path):
    path = tmp_path / "Mods"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path, mods_dir):
    cfg = Config(tmp_path / "vsmod.cfg")
    cfg.load()
    cfg.mods_dir = mods_dir
    cfg.game_version = "1.19.0"
    cfg.missing_version = MissingVersionPolicy.USE_LATEST
    cfg.save()
    return cfg
