"""Write downloaded releases into the mods directory, backing up the old file."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .config import Policy
from .decision import UpdateOutcome
from .models import InstalledMod, RemoteRelease

BACKUP_PREFIX = "Old-"
OLDER_VERSIONS_PREFIX = "Older-"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
MAX_NAME_ATTEMPTS = 10_000
DEFAULT_EXTENSION = ".zip"

_UNSAFE_CHARS = str.maketrans({":": ";", "/": "-", "\\": "-"})


class PublishError(Exception):
    """Base exception for failures while installing a release."""

    pass


class NameSpaceExhausted(PublishError):
    """Raised when no free file name is found for a release."""

    pass


class FilesystemError(PublishError):
    """Raised when moving the old file or writing the new one fails."""

    pass


@dataclass
class WriteResult:
    path: Path | None = None
    backup_path: Path | None = None
    in_older_folder: bool = False

    @property
    def written(self) -> bool:
        return self.path is not None


def sanitize_filename(name: str) -> str:
    """Replace characters that cannot appear in a file name."""
    return name.translate(_UNSAFE_CHARS)


def release_filename(mod: InstalledMod, release: RemoteRelease) -> str:
    """
    Build "{name} - ({mod_id}) - {version} - {tag}.zip".

    Empty parts are left out. The extension follows the published file
    name when it has one.
    """
    parts = [mod.name, f"({mod.mod_id})" if mod.mod_id else "", release.version]
    parts.append(release.primary_tag)
    stem = " - ".join(p for p in parts if p)

    extension = Path(release.filename).suffix if release.filename else ""
    return sanitize_filename(stem + (extension or DEFAULT_EXTENSION))


def find_free_path(directory: Path, filename: str, vacating: Path | None = None) -> Path:
    """
    Return directory/filename, or "name (n).ext" for the first unused n.

    A name held by `vacating` counts as free, since that file is moved
    away before the new one is renamed into place.
    """

    def is_free(candidate: Path) -> bool:
        if vacating is not None and candidate == vacating:
            return True
        try:
            return not candidate.exists()
        except OSError as e:
            raise FilesystemError(f"Cannot use file name {candidate.name}: {e}") from e

    candidate = directory / filename
    if is_free(candidate):
        return candidate

    stem = Path(filename).stem
    suffix = Path(filename).suffix
    for n in range(1, MAX_NAME_ATTEMPTS + 1):
        candidate = directory / f"{stem} ({n}){suffix}"
        if is_free(candidate):
            return candidate

    raise NameSpaceExhausted(
        f"No free file name for {filename} after {MAX_NAME_ATTEMPTS} attempts"
    )


def _discard(path: Path) -> None:
    """Remove a leftover temp file; the original error is what gets reported."""
    try:
        path.unlink(missing_ok=True)
    except OSError:
        pass


class ArchivePublisher:
    """
    Installs releases for one update pass.

    The backup folder names come from the pass start time, so every mod
    updated in the same pass shares the same folders.
    """

    def __init__(self, mods_dir: Path, started_at: datetime | None = None):
        self.mods_dir = Path(mods_dir)
        self.started_at = started_at or datetime.now()
        stamp = self.started_at.strftime(TIMESTAMP_FORMAT)
        self.backup_dir = self.mods_dir / f"{BACKUP_PREFIX}{stamp}"
        self.older_dir = self.mods_dir / f"{OLDER_VERSIONS_PREFIX}{stamp}"

    def publish(
        self,
        mod: InstalledMod,
        outcome: UpdateOutcome,
        payload: bytes,
        resolved_below: bool,
        policy: Policy,
    ) -> WriteResult:
        """
        Write the new release and back up the installed file.

        Does nothing unless the outcome is UPDATED. The payload is written
        to a temp file first, then the old file is moved to the backup
        folder, then the temp file is renamed into place. If any step
        fails, the old file is left at (or moved back to) its original
        path and no new file remains. An existing file is never
        overwritten; a numbered name is chosen instead.
        """
        if not outcome.should_install or outcome.release is None:
            return WriteResult()

        result = WriteResult()
        if resolved_below and policy.move_older_to_subfolder:
            target_dir = self.older_dir
            result.in_older_folder = True
        else:
            target_dir = self.mods_dir

        source = mod.source_path if mod.source_path and mod.source_path.exists() else None
        filename = release_filename(mod, outcome.release)
        final_path, temp_path = self.stage(target_dir, filename, payload, vacating=source)

        if source is not None:
            try:
                result.backup_path = self.backup(source)
            except FilesystemError:
                _discard(temp_path)
                raise

        try:
            temp_path.rename(final_path)
        except OSError as e:
            _discard(temp_path)
            if result.backup_path is not None:
                self.restore(result.backup_path, source)
            raise FilesystemError(f"Failed to write {final_path.name}: {e}") from e

        result.path = final_path
        return result

    def stage(
        self, target_dir: Path, filename: str, payload: bytes, vacating: Path | None = None
    ) -> tuple[Path, Path]:
        """
        Pick a free name in target_dir and write payload to a temp file beside it.

        Returns (final_path, temp_path). Nothing is left behind on failure.
        """
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Failed to create {target_dir}: {e}") from e

        final_path = find_free_path(target_dir, filename, vacating)
        temp_path = target_dir / f".downloading_{final_path.name}"
        try:
            with open(temp_path, "wb") as f:
                f.write(payload)
        except OSError as e:
            _discard(temp_path)
            raise FilesystemError(f"Failed to write {final_path.name}: {e}") from e
        return final_path, temp_path

    def backup(self, source: Path) -> Path:
        """Move source into this pass's backup folder, replacing a same-named file."""
        dest = self.backup_dir / source.name
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            if dest.exists():
                dest.unlink()
            source.rename(dest)
        except OSError as e:
            raise FilesystemError(f"Failed to back up {source.name}: {e}") from e
        return dest

    def restore(self, backup_path: Path, source: Path) -> None:
        """Move a backed-up file back to where it was installed."""
        try:
            backup_path.rename(source)
        except OSError as e:
            raise FilesystemError(
                f"Failed to restore {source.name} from {backup_path}: {e}"
            ) from e
