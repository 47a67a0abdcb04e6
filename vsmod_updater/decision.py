"""Decide whether a resolved release should replace the installed mod."""

from dataclasses import dataclass
from enum import Enum

from .config import Policy
from .models import RemoteRelease
from .resolver import Resolution
from .version import compare_versions


class OutcomeKind(Enum):
    UPDATED = "updated"
    ALREADY_CURRENT = "current"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class UpdateOutcome:
    kind: OutcomeKind
    release: RemoteRelease | None = None
    reason: str = ""

    @property
    def should_install(self) -> bool:
        return self.kind is OutcomeKind.UPDATED

    @classmethod
    def failed(cls, reason: str) -> "UpdateOutcome":
        return cls(OutcomeKind.FAILED, reason=reason)


def decide(
    resolution: Resolution | None, installed_version: str, policy: Policy
) -> UpdateOutcome:
    """
    Turn a resolution into an outcome. Pure; performs no I/O.

    always_download wins over everything, then a newer remote version,
    then a permitted downgrade. An older remote without downgrade
    permission counts as already current.
    """
    if resolution is None:
        return UpdateOutcome(
            OutcomeKind.SKIPPED, reason="no matching release under policy"
        )

    release = resolution.release
    result = compare_versions(release.version, installed_version)

    if policy.always_download:
        return UpdateOutcome(
            OutcomeKind.UPDATED, release, "always download is enabled"
        )
    if result > 0:
        return UpdateOutcome(OutcomeKind.UPDATED, release, "has a newer version")
    if result < 0 and policy.can_downgrade:
        return UpdateOutcome(
            OutcomeKind.UPDATED,
            release,
            "has an older version and downgrading is allowed",
        )
    if result == 0:
        return UpdateOutcome(OutcomeKind.ALREADY_CURRENT, release, "is on latest")
    return UpdateOutcome(
        OutcomeKind.ALREADY_CURRENT, release, "remote is older, downgrade not allowed"
    )
