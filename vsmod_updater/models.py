"""Typed records for installed mods and remote releases."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class DescriptorError(Exception):
    """Raised when a modinfo.json descriptor cannot be turned into a mod."""

    pass


@dataclass(frozen=True)
class InstalledMod:
    """A mod package found in the mods directory."""

    mod_id: str | None
    name: str
    version: str
    source_path: Path

    @classmethod
    def from_descriptor(cls, data: Any, source_path: Path) -> "InstalledMod":
        """
        Build an InstalledMod from a parsed modinfo.json.

        Keys are matched case-insensitively. A missing version reads as
        "0.0.0" and a missing name falls back to the package file name.
        """
        if not isinstance(data, dict):
            raise DescriptorError(
                f"modinfo.json in {source_path.name} is not a JSON object"
            )
        info = {str(k).lower(): v for k, v in data.items() if v is not None}

        mod_id = info.get("modid")
        name = info.get("name") or source_path.stem
        version = info.get("version") or "0.0.0"

        return cls(
            mod_id=str(mod_id) if mod_id not in (None, "") else None,
            name=str(name),
            version=str(version),
            source_path=source_path.resolve(),
        )


@dataclass
class RemoteRelease:
    """One published release of a mod. Tags are game versions, newest first."""

    version: str
    file_id: int
    tags: list[str] = field(default_factory=list)
    filename: str = ""
    release_id: int | None = None

    @property
    def primary_tag(self) -> str:
        return self.tags[0] if self.tags else ""
