"""Scan the mods directory for installed mod packages."""

import json
import zipfile
import zlib
from pathlib import Path
from typing import Any

from .models import DescriptorError, InstalledMod

DESCRIPTOR_NAME = "modinfo.json"
PACKAGE_SUFFIX = ".zip"


def _strip_comments(text: str) -> str:
    """Remove // and /* */ comments outside of string literals."""
    out = []
    i = 0
    in_string = False
    while i < len(text):
        c = text[i]
        if in_string:
            out.append(c)
            if c == "\\" and i + 1 < len(text):
                out.append(text[i + 1])
                i += 2
                continue
            if c == '"':
                in_string = False
            i += 1
        elif c == '"':
            in_string = True
            out.append(c)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = len(text) if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = len(text) if end == -1 else end + 2
        else:
            out.append(c)
            i += 1
    return "".join(out)


def _strip_trailing_commas(text: str) -> str:
    """Drop commas that directly precede a closing } or ]."""
    out = []
    in_string = False
    escaped = False
    for i, c in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
        elif c == '"':
            in_string = True
        elif c == ",":
            rest = text[i + 1 :].lstrip()
            if rest[:1] in ("}", "]"):
                continue
        out.append(c)
    return "".join(out)


def load_descriptor(text: str) -> Any:
    """
    Parse modinfo.json text.

    Mod authors often leave comments and trailing commas in the file, so
    both are accepted.
    """
    return json.loads(_strip_trailing_commas(_strip_comments(text)))


def read_descriptor(package: Path) -> Any | None:
    """
    Read the descriptor from a mod package.

    Returns None when the package has no modinfo.json at its root.
    Raises DescriptorError for broken, encrypted or unsupported archives
    and for unparseable JSON.
    """
    try:
        with zipfile.ZipFile(package, "r") as zf:
            entry = next(
                (n for n in zf.namelist() if n.lower() == DESCRIPTOR_NAME), None
            )
            if entry is None:
                return None
            raw = zf.read(entry)
    except (
        zipfile.BadZipFile,
        zlib.error,
        EOFError,
        OSError,
        RuntimeError,
        NotImplementedError,
    ) as e:
        raise DescriptorError(f"Cannot read {package.name}: {e}") from e

    try:
        return load_descriptor(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DescriptorError(f"Invalid {DESCRIPTOR_NAME} in {package.name}: {e}") from e


def list_packages(mods_dir: Path) -> list[Path]:
    """Zip packages directly inside mods_dir, sorted by name."""
    return sorted(
        p
        for p in Path(mods_dir).iterdir()
        if p.is_file() and p.suffix.lower() == PACKAGE_SUFFIX
    )


def scan_inventory(mods_dir: Path) -> tuple[list[InstalledMod], list[str]]:
    """
    Find installed mods.

    Returns:
        - mods: one InstalledMod per package with a descriptor
        - errors: messages for packages that could not be read

    Packages without a descriptor are left out silently.
    """
    mods: list[InstalledMod] = []
    errors: list[str] = []

    for package in list_packages(mods_dir):
        try:
            data = read_descriptor(package)
            if data is None:
                continue
            mods.append(InstalledMod.from_descriptor(data, package))
        except DescriptorError as e:
            errors.append(str(e))

    return mods, errors
