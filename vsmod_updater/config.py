"""Flat-file configuration and the update policy derived from it."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

CONFIG_FILENAME = "vsmod.cfg"
DEFAULT_MODS_DIR = "./Mods"


class MissingRequiredConfig(Exception):
    """Raised when a setting needed for an update pass is unset or invalid."""

    pass


class MissingVersionPolicy(Enum):
    """What to do when no release is tagged with the configured game version."""

    USE_LATEST = "Use Latest"
    USE_ONE_VERSION_BELOW = "Use One Version Below"
    SKIP = "Skip"

    @classmethod
    def parse(cls, value: str) -> "MissingVersionPolicy":
        """Parse a config value case-insensitively. Raises ValueError."""
        wanted = value.strip().lower()
        for member in cls:
            if member.value.lower() == wanted or member.name.lower() == wanted:
                return member
        raise ValueError(f"Unknown missing version policy: {value!r}")


@dataclass(frozen=True)
class Policy:
    """Update policy for one pass."""

    game_version: str
    always_update_to_newest: bool = True
    can_downgrade: bool = False
    always_download: bool = False
    missing_version: MissingVersionPolicy = MissingVersionPolicy.USE_LATEST
    move_older_to_subfolder: bool = False


def parse_bool(value: str) -> bool:
    """Parse "True"/"False" (any case). Raises ValueError."""
    normalized = value.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    raise ValueError(f"Not a boolean: {value!r}")


def _format_bool(value: bool) -> str:
    return "True" if value else "False"


class Config:
    """
    Settings stored as ``Key = Value`` lines.

    The file is created with defaults on first load and rewritten in full
    by every setter.
    """

    def __init__(self, config_path: Path | None = None):
        self.config_path = Path(config_path or Path.cwd() / CONFIG_FILENAME)
        self.mods_dir: Path | None = Path(DEFAULT_MODS_DIR)
        self.game_version: str | None = None
        self.always_update: bool = True
        self.can_downgrade: bool = False
        self.always_download: bool = False
        self.missing_version: MissingVersionPolicy = MissingVersionPolicy.USE_LATEST
        self.move_older_to_subfolder: bool = False

    def exists(self) -> bool:
        """Check if the config file exists."""
        return self.config_path.exists()

    def load(self) -> None:
        """Load settings from file, writing a default file if there is none."""
        if not self.exists():
            self.save()
            return

        with open(self.config_path, encoding="utf-8") as f:
            lines = f.read().splitlines()

        for line in lines:
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip().lower()
            value = value.strip()

            if key == "modpath":
                self.mods_dir = Path(value) if value else None
            elif key == "gameversion":
                self.game_version = value or None
            elif key == "alwaysupdate":
                self.always_update = _bool_or(value, True)
            elif key == "candowngrade":
                self.can_downgrade = _bool_or(value, False)
            elif key == "alwaysdownload":
                self.always_download = _bool_or(value, False)
            elif key == "missingversion":
                try:
                    self.missing_version = MissingVersionPolicy.parse(value)
                except ValueError:
                    self.missing_version = MissingVersionPolicy.USE_LATEST
            elif key == "moveoldertosubfolder":
                self.move_older_to_subfolder = _bool_or(value, False)

    def save(self) -> None:
        """Write every setting to the config file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [
            f"ModPath = {self.mods_dir or ''}",
            f"GameVersion = {self.game_version or ''}",
            f"AlwaysUpdate = {_format_bool(self.always_update)}",
            f"CanDowngrade = {_format_bool(self.can_downgrade)}",
            f"AlwaysDownload = {_format_bool(self.always_download)}",
            f"MissingVersion = {self.missing_version.value}",
            f"MoveOlderToSubfolder = {_format_bool(self.move_older_to_subfolder)}",
        ]
        with open(self.config_path, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    def set_mods_dir(self, path: Path) -> None:
        path = Path(path)
        if not path.is_dir():
            raise ValueError(f"Directory doesn't exist: {path}")
        self.mods_dir = path
        self.save()

    def set_game_version(self, version: str) -> None:
        version = version.strip()
        if not version:
            raise ValueError("Game version cannot be empty")
        self.game_version = version
        self.save()

    def set_always_update(self, value: bool) -> None:
        self.always_update = value
        self.save()

    def set_can_downgrade(self, value: bool) -> None:
        self.can_downgrade = value
        self.save()

    def set_always_download(self, value: bool) -> None:
        self.always_download = value
        self.save()

    def set_missing_version(self, value: MissingVersionPolicy) -> None:
        self.missing_version = value
        self.save()

    def set_move_older_to_subfolder(self, value: bool) -> None:
        self.move_older_to_subfolder = value
        self.save()

    def set_value(self, key: str, value: str) -> None:
        """
        Set a setting by its file key (case-insensitive), validating the value.

        Raises KeyError for unknown keys and ValueError for invalid values.
        """
        setters = {
            "modpath": lambda v: self.set_mods_dir(Path(v)),
            "gameversion": self.set_game_version,
            "alwaysupdate": lambda v: self.set_always_update(parse_bool(v)),
            "candowngrade": lambda v: self.set_can_downgrade(parse_bool(v)),
            "alwaysdownload": lambda v: self.set_always_download(parse_bool(v)),
            "missingversion": lambda v: self.set_missing_version(
                MissingVersionPolicy.parse(v)
            ),
            "moveoldertosubfolder": lambda v: self.set_move_older_to_subfolder(
                parse_bool(v)
            ),
        }
        setter = setters.get(key.strip().lower())
        if setter is None:
            raise KeyError(key)
        setter(value)

    def as_rows(self) -> list[tuple[str, str]]:
        """Settings as (key, display value) pairs in file order."""
        return [
            ("ModPath", str(self.mods_dir or "")),
            ("GameVersion", self.game_version or ""),
            ("AlwaysUpdate", _format_bool(self.always_update)),
            ("CanDowngrade", _format_bool(self.can_downgrade)),
            ("AlwaysDownload", _format_bool(self.always_download)),
            ("MissingVersion", self.missing_version.value),
            ("MoveOlderToSubfolder", _format_bool(self.move_older_to_subfolder)),
        ]

    def require_mods_dir(self) -> Path:
        """Return the mods directory, or raise if it is unset or missing."""
        if self.mods_dir is None:
            raise MissingRequiredConfig("Mods directory is not set.")
        if not self.mods_dir.is_dir():
            raise MissingRequiredConfig(f"Mod folder doesn't exist: {self.mods_dir}")
        return self.mods_dir

    def policy(self) -> Policy:
        """Build the update policy, or raise if the game version is unset."""
        if not self.game_version:
            raise MissingRequiredConfig("Game version is not set.")
        return Policy(
            game_version=self.game_version,
            always_update_to_newest=self.always_update,
            can_downgrade=self.can_downgrade,
            always_download=self.always_download,
            missing_version=self.missing_version,
            move_older_to_subfolder=self.move_older_to_subfolder,
        )


def _bool_or(value: str, default: bool) -> bool:
    try:
        return parse_bool(value)
    except ValueError:
        return default
