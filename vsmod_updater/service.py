"""Service layer - the update pass, independent of the CLI."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable

from .api import ModDBAPI, TransportError
from .config import Config, Policy
from .decision import OutcomeKind, UpdateOutcome, decide
from .downloader import Downloader
from .inventory import scan_inventory
from .models import InstalledMod
from .publisher import ArchivePublisher, PublishError, WriteResult
from .resolver import EmptyReleaseList, MatchKind, Resolution, resolve_release

# progress callback: (event_type, percentage 0-1, message)
ProgressCallback = Callable[[str, float, str], None]
# download callback: (label, bytes_downloaded, total_bytes)
DownloadCallback = Callable[[str, int, int], None]

_MATCH_LABELS = {
    MatchKind.EXACT: "Exact release found",
    MatchKind.NEWER: "Newer release found",
    MatchKind.OLDER_ALLOWED: "Older release found",
    MatchKind.LATEST_FALLBACK: "No version found. Using latest",
}


@dataclass
class ModReport:
    mod: InstalledMod
    outcome: UpdateOutcome
    resolution: Resolution | None = None
    written: WriteResult | None = None


@dataclass
class UpdatePassResult:
    checked: int = 0
    updated: int = 0
    already_current: int = 0
    skipped: int = 0
    failed: int = 0
    dry_run: bool = False
    backup_dir: Path | None = None
    reports: list[ModReport] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def record(self, report: ModReport) -> None:
        self.reports.append(report)
        kind = report.outcome.kind
        if kind is OutcomeKind.UPDATED:
            self.updated += 1
        elif kind is OutcomeKind.ALREADY_CURRENT:
            self.already_current += 1
        elif kind is OutcomeKind.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
            self.errors.append(f"{report.mod.name}: {report.outcome.reason}")


def _noop_progress(event: str, pct: float, msg: str) -> None:
    pass


def describe_match(resolution: Resolution) -> str:
    return f"{_MATCH_LABELS[resolution.match_kind]}: {resolution.tag or '-'}"


class ModUpdateService:
    """Runs update passes over the mods directory named in the config."""

    def __init__(self, config: Config, api: ModDBAPI | None = None):
        self.config = config
        self._api = api

    @property
    def api(self) -> ModDBAPI:
        if self._api is None:
            self._api = ModDBAPI()
        return self._api

    def list_installed(self) -> tuple[list[InstalledMod], list[str]]:
        """Scan the configured mods directory."""
        return scan_inventory(self.config.require_mods_dir())

    def run_update_pass(
        self,
        dry_run: bool = False,
        on_progress: ProgressCallback | None = None,
        on_download: DownloadCallback | None = None,
        started_at: datetime | None = None,
    ) -> UpdatePassResult:
        """
        Check every installed mod and install the releases the policy selects.

        Mods are processed one at a time in inventory order. Errors for a
        single mod are recorded as a FAILED outcome and the pass moves on.
        Raises MissingRequiredConfig before touching anything when the game
        version or mods directory is unset.
        """
        progress = on_progress or _noop_progress
        policy = self.config.policy()
        mods_dir = self.config.require_mods_dir()

        progress("scan", 0.0, f"Scanning {mods_dir}...")
        mods, scan_errors = scan_inventory(mods_dir)
        for error in scan_errors:
            progress("error", 0.0, error)

        publisher = ArchivePublisher(mods_dir, started_at)
        downloader = Downloader(self.api)
        result = UpdatePassResult(dry_run=dry_run, errors=list(scan_errors))

        for index, mod in enumerate(mods):
            pct = index / len(mods)
            result.checked += 1
            progress("check", pct, f"Checking {mod.name} ({mod.version})...")

            report = self._process_mod(
                mod, policy, publisher, downloader, dry_run, progress, pct, on_download
            )
            result.record(report)

            outcome = report.outcome
            if outcome.kind is OutcomeKind.FAILED:
                progress("error", pct, f"Failed to update {mod.name}: {outcome.reason}")
            elif outcome.kind is OutcomeKind.SKIPPED:
                progress("skip", pct, f"Skipping {mod.name}, {outcome.reason}")
            elif outcome.kind is OutcomeKind.ALREADY_CURRENT:
                progress("current", pct, f"{mod.name} is on latest ({mod.version})!")
            elif dry_run:
                progress("updated", pct, f"Would update {mod.name}, {outcome.reason}")
            else:
                progress("updated", pct, f"Updated {mod.name} -> {report.written.path.name}")

        if publisher.backup_dir.exists():
            result.backup_dir = publisher.backup_dir
        progress("done", 1.0, f"Checked {result.checked} mods")
        return result

    def _process_mod(
        self,
        mod: InstalledMod,
        policy: Policy,
        publisher: ArchivePublisher,
        downloader: Downloader,
        dry_run: bool,
        progress: ProgressCallback,
        pct: float,
        on_download: DownloadCallback | None,
    ) -> ModReport:
        if not mod.mod_id:
            return ModReport(mod, UpdateOutcome.failed("modinfo.json has no modid"))

        try:
            releases = self.api.get_releases(mod.mod_id)
            resolution = resolve_release(releases, policy.game_version, policy)
        except (TransportError, EmptyReleaseList) as e:
            return ModReport(mod, UpdateOutcome.failed(str(e)))

        if resolution is not None:
            progress("match", pct, describe_match(resolution))

        outcome = decide(resolution, mod.version, policy)
        report = ModReport(mod, outcome, resolution)
        if not outcome.should_install:
            return report

        progress("download", pct, f"Updating {mod.name}, {outcome.reason}.")
        if dry_run:
            return report

        def forward(done: int, total: int) -> None:
            if on_download:
                on_download(mod.name, done, total)

        try:
            payload = downloader.fetch_payload(outcome.release, on_progress=forward)
            report.written = publisher.publish(
                mod, outcome, payload, resolution.resolved_below, policy
            )
        except (TransportError, PublishError, OSError) as e:
            report.outcome = UpdateOutcome(OutcomeKind.FAILED, outcome.release, str(e))
        return report
