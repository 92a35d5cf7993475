"""The `packsmith` command-line interface."""

import importlib.metadata
from pathlib import Path
import time

import click

from .config import CONFIG_FILENAME, find_project_root, load_config
from .exceptions import BuildError, ConfigError
from .models import AddonConfig, BuildSettings, PackType, ProjectLayout
from .packaging.orchestrator import BuildOrchestrator
from .packaging.staging import WORKSPACES_DIRNAME, clean_workspaces
from .scaffolding.generator import scaffold_new_addon

try:
    __version__ = importlib.metadata.version("packsmith")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0-dev"

_PACK_CHOICES = {
    "behaviour": PackType.BEHAVIOUR,
    "resource": PackType.RESOURCE,
    "skin": PackType.SKIN,
    "world-template": PackType.WORLD_TEMPLATE,
}


def _load_project(config_path: str | None) -> tuple[Path, AddonConfig | None]:
    """Resolves the project root and its configuration, if any."""
    if config_path:
        path = Path(config_path)
        return path.parent, load_config(path)
    project_root = find_project_root()
    if project_root is None:
        return Path.cwd(), None
    return project_root, load_config(project_root / CONFIG_FILENAME)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(
    __version__,
    "-V",
    "--version",
    prog_name="packsmith",
    message="%(prog)s version %(version)s",
)
def cli() -> None:
    """Addon build tool: stage, transform, deploy and package packs."""
    pass


@cli.command("build")
@click.option(
    "-p",
    "--profile",
    default=None,
    help="Build profile to use instead of the configured default.",
)
@click.option("-q", "--quiet", is_flag=True, help="Only report warnings and errors.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, resolve_path=True),
    help=f"Path to {CONFIG_FILENAME}. Defaults to the nearest one above the current directory.",
)
@click.pass_context
def build_command(
    ctx: click.Context, profile: str | None, quiet: bool, config_path: str | None
) -> None:
    """Builds every declared pack using the selected profile."""
    start = time.monotonic()
    try:
        project_root, config = _load_project(config_path)
    except ConfigError as e:
        click.secho(f"❌ Invalid configuration:\n{e}", fg="red", err=True)
        raise click.Abort() from e

    orchestrator = BuildOrchestrator(
        config=config,
        project_root=project_root,
        profile_name=profile,
        quiet=quiet,
    )
    outcome = orchestrator.build()
    click.echo(f"Finished in {time.monotonic() - start:.2f}s")

    if outcome.failed:
        click.secho("❌ Build failed.", fg="red", err=True)
        ctx.exit(1)
    if outcome.archive_path:
        click.secho(f"✅ Addon packaged: {outcome.archive_path}", fg="green")
    else:
        click.secho("✅ Build succeeded.", fg="green")


@cli.command("new")
@click.option(
    "--path",
    default=".",
    type=click.Path(file_okay=False, resolve_path=True),
    help="Directory to create the addon in.",
)
@click.option("--name", help="Addon name.")
@click.option("--description", help="Addon description.")
@click.option(
    "--pack",
    "packs",
    multiple=True,
    type=click.Choice(list(_PACK_CHOICES)),
    help="Pack to create. May be repeated.",
)
@click.option(
    "--layout",
    default=ProjectLayout.VANILLA.value,
    type=click.Choice([layout.value for layout in ProjectLayout]),
    show_default=True,
    help="Project layout.",
)
def new_command(
    path: str,
    name: str | None,
    description: str | None,
    packs: tuple[str, ...],
    layout: str,
) -> None:
    """Creates a new addon project."""
    name = name or click.prompt("Addon Name")
    if description is None:
        description = click.prompt("Addon Description", default="", show_default=False)
    if not packs:
        packs = tuple(
            click.prompt(
                "Packs to create",
                default="behaviour,resource",
                value_proc=lambda value: [
                    click.Choice(list(_PACK_CHOICES)).convert(item.strip(), None, None)
                    for item in value.split(",")
                    if item.strip()
                ],
            )
        )

    try:
        project_dir = scaffold_new_addon(
            name,
            description,
            path,
            [_PACK_CHOICES[pack] for pack in packs],
            layout=ProjectLayout(layout),
        )
    except (BuildError, FileExistsError) as e:
        click.secho(f"❌ Failed to create addon: {e}", fg="red", err=True)
        raise click.Abort() from e

    click.secho(f"✅ Created addon '{name}' in {project_dir}", fg="green")


@cli.command("clean")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, resolve_path=True),
    help=f"Path to {CONFIG_FILENAME}. Defaults to the nearest one above the current directory.",
)
@click.option(
    "--keep-incomplete",
    is_flag=True,
    help="Keep workspaces of builds that did not finish, for inspection.",
)
def clean_command(config_path: str | None, keep_incomplete: bool) -> None:
    """Removes staging workspaces left by previous builds."""
    try:
        project_root, config = _load_project(config_path)
    except ConfigError as e:
        click.secho(f"❌ Invalid configuration:\n{e}", fg="red", err=True)
        raise click.Abort() from e

    settings = config.build if config else BuildSettings()
    build_dir = project_root / settings.build_path / WORKSPACES_DIRNAME
    click.echo(f"🧹 Cleaning staging workspaces in {build_dir}...")
    removed = clean_workspaces(build_dir, keep_incomplete=keep_incomplete)
    if removed:
        click.secho(f"✅ Removed {len(removed)} workspace(s).", fg="green")
    else:
        click.secho("i️ No workspaces found, nothing to clean.", fg="yellow")


main = cli
