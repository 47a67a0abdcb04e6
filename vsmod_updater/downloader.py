"""Download release files with progress tracking."""

from typing import Callable

import requests
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from .api import ModDBAPI, TransportError
from .models import RemoteRelease


class Downloader:
    """Fetches release payloads from the mod database."""

    def __init__(self, api: ModDBAPI):
        self.api = api
        self.session = api.session

    def fetch_payload(
        self,
        release: RemoteRelease,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> bytes:
        """
        Download a release file into memory.

        Args:
            on_progress: Optional callback(bytes_downloaded, total_bytes).

        Raises TransportError on any network or HTTP failure, or when the
        server sends a malformed content-length.
        """
        url = self.api.payload_url(release.file_id)
        try:
            with self.session.get(url, stream=True) as response:
                response.raise_for_status()

                total_size = int(response.headers.get("content-length", 0) or 0)
                chunks = []
                bytes_downloaded = 0
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        chunks.append(chunk)
                        bytes_downloaded += len(chunk)
                        if on_progress:
                            on_progress(bytes_downloaded, total_size)
        except requests.RequestException as e:
            raise TransportError(f"Failed to download file {release.file_id}: {e}") from e
        except ValueError as e:
            raise TransportError(
                f"Bad content-length for file {release.file_id}: {e}"
            ) from e

        return b"".join(chunks)


def create_download_progress(console: Console | None = None) -> Progress:
    """Create a progress bar for downloads."""
    return Progress(
        TextColumn("[bold blue]{task.fields[filename]}", justify="right"),
        BarColumn(bar_width=30),
        "[progress.percentage]{task.percentage:>3.0f}%",
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=console,
        transient=True,
    )
