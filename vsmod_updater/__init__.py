"""Keep Vintage Story mods in step with the mod database."""

__version__ = "0.1.0"
