"""Mirrors staged packs into the game's local development pack folders."""

from collections.abc import Callable
import enum
import os
from pathlib import Path
import shutil

from pyvider.telemetry import logger

from ..exceptions import DeployError, PlatformDirectoryError
from ..models import PackType
from .staging import copy_tree

COM_MOJANG_ENV = "PACKSMITH_COM_MOJANG"

DEV_PACK_FOLDERS: dict[PackType, str] = {
    PackType.BEHAVIOUR: "development_behavior_packs",
    PackType.RESOURCE: "development_resource_packs",
}


class DeployStatus(enum.Enum):
    DEPLOYED = "deployed"
    UNSUPPORTED = "unsupported"


def get_com_mojang_dir() -> Path:
    """Returns the game's ``com.mojang`` data directory."""
    override = os.environ.get(COM_MOJANG_ENV)
    if override:
        return Path(override).expanduser()
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        raise PlatformDirectoryError(
            f"Could not determine the home directory to locate com.mojang: {e}. "
            f"Set {COM_MOJANG_ENV} to the com.mojang folder."
        ) from e
    return (
        home
        / "AppData"
        / "Local"
        / "Packages"
        / "Microsoft.MinecraftUWP_8wekyb3d8bbwe"
        / "LocalState"
        / "games"
        / "com.mojang"
    )


def deploy_project(
    staged_root: Path,
    pack_type: PackType,
    project_name: str,
    com_mojang_resolver: Callable[[], Path] = get_com_mojang_dir,
) -> DeployStatus:
    """
    Replaces ``<com.mojang>/<dev folder>/<project_name>`` with the staged tree.

    Pack types without a development folder (skins, world templates) are not
    deployed and report ``DeployStatus.UNSUPPORTED``.
    """
    folder = DEV_PACK_FOLDERS.get(pack_type)
    if folder is None:
        return DeployStatus.UNSUPPORTED

    destination = com_mojang_resolver() / folder / project_name
    try:
        if destination.exists():
            shutil.rmtree(destination)
        copy_tree(staged_root, destination)
    except OSError as e:
        raise DeployError(
            f"Failed to copy '{project_name}' from {staged_root} to {destination}: {e}"
        ) from e

    logger.debug(f"Deployed '{project_name}' to {destination}")
    return DeployStatus.DEPLOYED
