"""Pick the release that applies to a game version."""

from dataclasses import dataclass
from enum import Enum

from .config import MissingVersionPolicy, Policy
from .models import RemoteRelease
from .version import compare_versions


class EmptyReleaseList(Exception):
    """Raised when a mod has no published releases to fall back on."""

    pass


class MatchKind(Enum):
    EXACT = "exact"
    NEWER = "newer"
    OLDER_ALLOWED = "older"
    LATEST_FALLBACK = "latest"


@dataclass
class Resolution:
    """The selected release and how it was matched."""

    release: RemoteRelease
    match_kind: MatchKind
    tag: str = ""  # the tag that matched, or the primary tag on fallback

    @property
    def resolved_below(self) -> bool:
        """True when the release targets an older game version than configured."""
        return self.match_kind is MatchKind.OLDER_ALLOWED


def strip_tag(tag: str) -> str:
    """Turn a release tag like "v1.19.2" into a comparable version."""
    return tag.lstrip("v")


def resolve_release(
    releases: list[RemoteRelease], game_version: str, policy: Policy
) -> Resolution | None:
    """
    Select the release to install for game_version.

    Releases are scanned in the order given (newest first from the API),
    and each release's tags in their published order. The first tag that
    satisfies a rule wins; there is no search for a best match:

    1. tag newer than the game version, if always_update_to_newest
    2. tag equal to the game version
    3. tag older than the game version, if the missing version policy is
       USE_ONE_VERSION_BELOW

    With no match, SKIP returns None and every other policy falls back to
    the first release. Raises EmptyReleaseList if there is nothing to
    fall back on.
    """
    use_below = policy.missing_version is MissingVersionPolicy.USE_ONE_VERSION_BELOW

    for release in releases:
        for tag in release.tags:
            result = compare_versions(strip_tag(tag), game_version)
            if result > 0 and policy.always_update_to_newest:
                return Resolution(release, MatchKind.NEWER, tag)
            if result == 0:
                return Resolution(release, MatchKind.EXACT, tag)
            if result < 0 and use_below:
                return Resolution(release, MatchKind.OLDER_ALLOWED, tag)

    if policy.missing_version is MissingVersionPolicy.SKIP:
        return None

    if not releases:
        raise EmptyReleaseList("Mod has no published releases")

    latest = releases[0]
    return Resolution(latest, MatchKind.LATEST_FALLBACK, latest.primary_tag)
