"""Command-line interface: init, list, add and upgrade."""

import asyncio
import logging
from pathlib import Path

import click
import yaml

from .config import DEFAULT_INSTALL_DIR
from .config import ConfigStore
from .exceptions import ConfigError
from .index import ProjectIndex
from .pipeline import upgrade_installation
from .schema import SourceKind
from .schema import Specification

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


def default_config_path() -> Path:
    return Path(click.get_app_dir("addon-manager")) / "config.yaml"


def _load(store: ConfigStore):
    try:
        return store.load()
    except ConfigError as e:
        raise click.ClickException(f"Unable to load config: {e.message}") from e


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="ADDON_MANAGER_CONFIG",
    default=None,
    help="Config file (default: per-user app dir).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """Install and upgrade addons from CurseForge, WowAce or local folders."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = ConfigStore(config_path=config_path or default_config_path())


@cli.command()
@click.option(
    "--dir",
    "install_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_INSTALL_DIR,
    show_default=True,
    help="Installation directory.",
)
@click.pass_obj
def init(store: ConfigStore, install_dir: Path) -> None:
    """Create a config file with one empty installation."""
    try:
        store.init(install_dir)
    except ConfigError as e:
        raise click.ClickException(e.message) from e
    click.echo(f"Wrote {store.config_path}")


@cli.command("list")
@click.option("-p", "--path", "install_dir", default=None, help="Only list this installation's addons.")
@click.pass_obj
def list_addons(store: ConfigStore, install_dir: str | None) -> None:
    """List installations and their addons."""
    config = _load(store)
    if not install_dir:
        click.echo(yaml.safe_dump(config.model_dump(mode="json", exclude_none=True), sort_keys=False))
        return

    installation = config.get_installation(install_dir)
    if installation is None:
        click.echo(f"No installations handled at '{install_dir}'")
        return
    click.echo(yaml.safe_dump(installation.model_dump(mode="json", exclude_none=True), sort_keys=False))


@cli.command()
@click.option("-n", "--name", required=True, help="Addon project name.")
@click.option("-t", "--type", "kind", required=True, type=click.Choice([k.value for k in SourceKind]))
@click.option("-l", "--location", default=None, help="Source folder for link addons.")
@click.option("-i", "--install-dir", default=None, help="Installation directory (first one by default).")
@click.pass_obj
def add(store: ConfigStore, name: str, kind: str, location: str | None, install_dir: str | None) -> None:
    """Add an addon specification."""
    if kind == SourceKind.LINK and not location:
        raise click.BadParameter("link addons require --location", param_hint="-l/--location")

    spec = Specification(name=name, type=SourceKind(kind), location=location)
    try:
        store.add_addon(spec, Path(install_dir) if install_dir else None)
    except ConfigError as e:
        raise click.ClickException(e.message) from e
    click.echo(f"Added {name} ({kind})")


@cli.command()
@click.option("-i", "--install-dir", default=None, help="Installation directory (first one by default).")
@click.option("--no-conflict-check", is_flag=True, help="Apply addons even when their directories overlap.")
@click.pass_obj
def upgrade(store: ConfigStore, install_dir: str | None, no_conflict_check: bool) -> None:
    """Fetch and install the latest version of every addon."""
    config = _load(store)
    installation = config.get_installation(install_dir)
    if installation is None:
        raise click.ClickException(f"No installations handled at '{install_dir}'")

    report = asyncio.run(
        upgrade_installation(installation, ProjectIndex(), detect_conflicts=not no_conflict_check)
    )

    try:
        store.save(config)
    except ConfigError as e:
        raise click.ClickException(e.message) from e

    for outcome in report.outcomes:
        if outcome.ok:
            click.echo(f"{outcome.name}: ok ({outcome.committed} changes)")
        else:
            click.echo(f"{outcome.name}: {outcome.status}", err=True)
            for error in outcome.errors:
                click.echo(f"  {error}", err=True)

    if not report.ok:
        raise SystemExit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
