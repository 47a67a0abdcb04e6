"""Tests for the flat-file config."""

import pytest

from vsmod_updater.config import (
    Config,
    MissingRequiredConfig,
    MissingVersionPolicy,
    parse_bool,
)


def test_missing_file_is_created_with_defaults(tmp_path):
    path = tmp_path / "vsmod.cfg"
    config = Config(path)
    config.load()

    assert path.read_text().splitlines() == [
        "ModPath = Mods",
        "GameVersion = ",
        "AlwaysUpdate = True",
        "CanDowngrade = False",
        "AlwaysDownload = False",
        "MissingVersion = Use Latest",
        "MoveOlderToSubfolder = False",
    ]
    assert config.game_version is None
    assert config.always_update is True


def test_round_trip_through_setters(tmp_path, mods_dir):
    path = tmp_path / "vsmod.cfg"
    config = Config(path)
    config.load()
    config.set_mods_dir(mods_dir)
    config.set_game_version(" 1.19.8 ")
    config.set_can_downgrade(True)
    config.set_missing_version(MissingVersionPolicy.SKIP)

    reloaded = Config(path)
    reloaded.load()

    assert reloaded.mods_dir == mods_dir
    assert reloaded.game_version == "1.19.8"
    assert reloaded.can_downgrade is True
    assert reloaded.missing_version is MissingVersionPolicy.SKIP


def test_malformed_values_fall_back_to_defaults(tmp_path):
    path = tmp_path / "vsmod.cfg"
    path.write_text(
        "ModPath = C:/Games/VS=Mods\n"
        "gameversion = 1.20.0\n"
        "AlwaysUpdate = maybe\n"
        "CanDowngrade = 1\n"
        "AlwaysDownload = TRUE\n"
        "MissingVersion = whatever\n"
        "not a setting\n"
    )
    config = Config(path)
    config.load()

    assert str(config.mods_dir) == "C:/Games/VS=Mods"
    assert config.game_version == "1.20.0"
    assert config.always_update is True
    assert config.can_downgrade is False
    assert config.always_download is True
    assert config.missing_version is MissingVersionPolicy.USE_LATEST


def test_set_value_validates(config, tmp_path):
    with pytest.raises(ValueError):
        config.set_value("ModPath", str(tmp_path / "nope"))
    with pytest.raises(ValueError):
        config.set_value("GameVersion", "   ")
    with pytest.raises(ValueError):
        config.set_value("CanDowngrade", "yes")
    with pytest.raises(KeyError):
        config.set_value("Colour", "blue")

    config.set_value("missingversion", "use one version below")
    assert config.missing_version is MissingVersionPolicy.USE_ONE_VERSION_BELOW


def test_policy_requires_game_version(tmp_path):
    config = Config(tmp_path / "vsmod.cfg")
    config.load()

    with pytest.raises(MissingRequiredConfig):
        config.policy()


def test_policy_copies_settings(config):
    config.set_always_download(True)
    config.set_move_older_to_subfolder(True)

    policy = config.policy()

    assert policy.game_version == "1.19.0"
    assert policy.always_update_to_newest is True
    assert policy.always_download is True
    assert policy.move_older_to_subfolder is True


def test_require_mods_dir(config, tmp_path):
    assert config.require_mods_dir() == config.mods_dir

    config.mods_dir = tmp_path / "missing"
    with pytest.raises(MissingRequiredConfig):
        config.require_mods_dir()

    config.mods_dir = None
    with pytest.raises(MissingRequiredConfig):
        config.require_mods_dir()


def test_parse_bool():
    assert parse_bool("True") is True
    assert parse_bool(" false ") is False
    with pytest.raises(ValueError):
        parse_bool("")
