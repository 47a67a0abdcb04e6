"""Command-line interface for vsmod-updater."""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import TaskID
from rich.table import Table

from .config import CONFIG_FILENAME, Config, MissingRequiredConfig, MissingVersionPolicy
from .downloader import create_download_progress
from .service import ModUpdateService, UpdatePassResult

console = Console()

SEPARATOR = "█" * 50

_EVENT_STYLES = {
    "error": "red",
    "skip": "yellow",
    "current": "green",
    "updated": "green",
    "match": "dim",
    "download": "cyan",
}


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="VSMOD_CONFIG",
    default=CONFIG_FILENAME,
    show_default=True,
    help="Config file (or set VSMOD_CONFIG env var)",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path) -> None:
    """Update Vintage Story mods from the mod database."""
    ctx.ensure_object(dict)
    config = Config(config_path)
    config.load()
    ctx.obj["config"] = config

    if ctx.invoked_subcommand is None:
        ctx.invoke(menu)


def _print_event(event: str, pct: float, msg: str) -> None:
    style = _EVENT_STYLES.get(event)
    if event == "check":
        console.print(SEPARATOR, style="dim")
    if style:
        console.print(f"[{style}]{escape(msg)}[/{style}]")
    elif event != "done":
        console.print(escape(msg))


def _run_pass(config: Config, dry_run: bool) -> UpdatePassResult:
    """Run one update pass with live output. Raises MissingRequiredConfig."""
    service = ModUpdateService(config)
    tasks: dict[str, TaskID] = {}

    with create_download_progress(console) as progress:

        def on_download(label: str, done: int, total: int) -> None:
            if label not in tasks:
                tasks[label] = progress.add_task(
                    "download", filename=label[:40], total=total or None
                )
            progress.update(tasks[label], completed=done)

        result = service.run_update_pass(
            dry_run=dry_run,
            on_progress=_print_event,
            on_download=on_download,
        )
    return result


def _print_summary(result: UpdatePassResult) -> None:
    console.print(SEPARATOR, style="dim")
    verb = "Would download" if result.dry_run else "Downloaded"
    console.print(f"[bold]Checked {result.checked} mods. {verb} {result.updated} mods[/bold]")
    console.print(
        f"[dim]{result.already_current} current, {result.skipped} skipped, "
        f"{result.failed} failed[/dim]"
    )
    if result.backup_dir:
        console.print(f"[dim]Old files moved to {result.backup_dir}[/dim]")
    if result.errors:
        console.print(f"\n[red]Errors ({len(result.errors)}):[/red]")
        for error in result.errors[:10]:
            console.print(f"  [red]x[/red] {escape(error)}")
        if len(result.errors) > 10:
            console.print(f"  ... and {len(result.errors) - 10} more")


@main.command()
@click.option("--dry-run", is_flag=True, help="Show what would be updated without downloading")
@click.pass_context
def update(ctx: click.Context, dry_run: bool) -> None:
    """Check all installed mods and download updates."""
    config: Config = ctx.obj["config"]
    try:
        result = _run_pass(config, dry_run)
    except MissingRequiredConfig as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    _print_summary(result)


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """List installed mods."""
    config: Config = ctx.obj["config"]
    service = ModUpdateService(config)
    try:
        mods, errors = service.list_installed()
    except MissingRequiredConfig as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    table = Table(title=f"Installed mods ({len(mods)})")
    table.add_column("Mod", style="cyan")
    table.add_column("Mod ID", style="blue")
    table.add_column("Version", style="green")
    table.add_column("File", style="dim")
    for mod in mods:
        table.add_row(
            escape(mod.name[:40]),
            mod.mod_id or "[red]missing[/red]",
            mod.version,
            mod.source_path.name,
        )
    console.print(table)

    for error in errors:
        console.print(f"[yellow]Warning:[/yellow] {escape(error)}")


@main.group(name="config")
def config_group() -> None:
    """Show or change settings."""


@config_group.command(name="show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current settings."""
    config: Config = ctx.obj["config"]
    table = Table(title=str(config.config_path))
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in config.as_rows():
        table.add_row(key, value or "[dim]unset[/dim]")
    console.print(table)


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """
    Change a setting.

    KEY: ModPath, GameVersion, AlwaysUpdate, CanDowngrade, AlwaysDownload,
    MissingVersion or MoveOlderToSubfolder
    """
    config: Config = ctx.obj["config"]
    try:
        config.set_value(key, value)
    except KeyError:
        console.print(f"[red]Error:[/red] Unknown setting: {key}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    console.print(f"[green]{key} updated.[/green]")


def _prompt_choice(prompt: str, options: list[str]) -> int | None:
    """Show numbered options plus Cancel. Returns the 1-based pick or None."""
    for i, option in enumerate(options, start=1):
        console.print(f"{i}) {option}")
    console.print(f"{len(options) + 1}) Cancel")
    choice = click.prompt(prompt, type=click.IntRange(1, len(options) + 1))
    if choice == len(options) + 1:
        console.print("[dim]Update cancelled.[/dim]")
        return None
    return choice


def _prompt_bool(label: str, current: bool, yes: str, no: str, setter) -> None:
    console.print(f"Current {label} setting: {current}")
    choice = _prompt_choice("Option", [yes, no])
    if choice is not None:
        setter(choice == 1)
        console.print(f"[green]{label.capitalize()} setting updated to: {choice == 1}[/green]")


def _menu_set_mods_dir(config: Config) -> None:
    value = click.prompt("Enter the new mods directory", default="", show_default=False)
    if not value.strip():
        console.print("[yellow]No directory entered, no changes made.[/yellow]")
        return
    try:
        config.set_mods_dir(Path(value))
    except ValueError:
        console.print("[yellow]Directory doesn't exist, no changes made.[/yellow]")
        return
    console.print(f"[green]Mods directory updated to: {config.mods_dir}[/green]")


def _menu_set_game_version(config: Config) -> None:
    console.print(f"Current game version: {config.game_version or 'unset'}")
    console.print("[dim]Note that this doesn't check if the version exists.[/dim]")
    value = click.prompt("Enter the new game version", default="", show_default=False)
    try:
        config.set_game_version(value)
    except ValueError:
        console.print("[yellow]Please enter a valid game version.[/yellow]")
        return
    console.print(f"[green]Game version updated to: {config.game_version}[/green]")


def _menu_set_missing_version(config: Config) -> None:
    console.print(f"Current missing release setting: {config.missing_version.value}")
    console.print("Dictates what happens if the mod releases don't feature our version.")
    policies = list(MissingVersionPolicy)
    choice = _prompt_choice("Option", [p.value for p in policies])
    if choice is not None:
        config.set_missing_version(policies[choice - 1])
        console.print(
            f"[green]Missing release setting updated to: {config.missing_version.value}[/green]"
        )


@main.command()
@click.pass_context
def menu(ctx: click.Context) -> None:
    """Interactive menu (the default when no command is given)."""
    config: Config = ctx.obj["config"]

    while True:
        console.print(SEPARATOR)
        console.print("[bold]Vintage Story mod updater[/bold]")
        console.print("1. Check for updates")
        console.print(f"2. Set mods directory (Current: {config.mods_dir})")
        console.print(f"3. Set game version (Current: {config.game_version})")
        console.print(f"4. Always update to newest release? (Current: {config.always_update})")
        console.print(f"5. Allow downgrading mods? (Current: {config.can_downgrade})")
        console.print(f"6. Always download anyway? (Current: {config.always_download})")
        console.print(f"7. Missing release decision? (Current: {config.missing_version.value})")
        console.print(
            f"8. Move older releases to a subfolder? (Current: {config.move_older_to_subfolder})"
        )
        console.print("0. Exit")
        console.print(SEPARATOR)

        option = click.prompt("Option", type=click.IntRange(0, 8))
        if option == 0:
            console.print("Exiting")
            return
        if option == 1:
            try:
                result = _run_pass(config, dry_run=False)
            except MissingRequiredConfig as e:
                console.print(f"[red]Error:[/red] {e}")
                continue
            _print_summary(result)
        elif option == 2:
            _menu_set_mods_dir(config)
        elif option == 3:
            _menu_set_game_version(config)
        elif option == 4:
            _prompt_bool(
                "always update",
                config.always_update,
                "Always update mods",
                "Update only if there's an update specifically for your version",
                config.set_always_update,
            )
        elif option == 5:
            _prompt_bool(
                "can downgrade",
                config.can_downgrade,
                "Allow downgrading mods",
                "Do not allow downgrading mods",
                config.set_can_downgrade,
            )
        elif option == 6:
            _prompt_bool(
                "always download",
                config.always_download,
                "Always download anyway",
                "Do not download always",
                config.set_always_download,
            )
        elif option == 7:
            _menu_set_missing_version(config)
        elif option == 8:
            _prompt_bool(
                "move older releases",
                config.move_older_to_subfolder,
                "Put releases for older game versions in a subfolder",
                "Put them in the mods directory",
                config.set_move_older_to_subfolder,
            )


if __name__ == "__main__":
    main()
