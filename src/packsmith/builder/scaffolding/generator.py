"""Logic for scaffolding new addon projects and their packs."""

from collections.abc import Sequence
from pathlib import Path
import uuid

import jinja2

from ..config import CONFIG_FILENAME, write_config
from ..exceptions import NotSupportedError
from ..models import AddonConfig, PackType, ProjectLayout

_TEMPLATE_DIR = Path(__file__).parent / "templates"

PACK_SUFFIXES: dict[PackType, str] = {
    PackType.BEHAVIOUR: "BP",
    PackType.RESOURCE: "RP",
}

MODULE_TYPES: dict[PackType, str] = {
    PackType.BEHAVIOUR: "data",
    PackType.RESOURCE: "resources",
}


def _get_template_env() -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(_TEMPLATE_DIR),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_manifest(name: str, description: str, pack_type: PackType) -> str:
    template = _get_template_env().get_template("manifest.json.j2")
    return template.render(
        name=name,
        description=description,
        module_type=MODULE_TYPES[pack_type],
        header_uuid=uuid.uuid4(),
        module_uuid=uuid.uuid4(),
    )


def scaffold_new_addon(
    name: str,
    description: str,
    path: str | Path,
    packs: Sequence[PackType],
    layout: ProjectLayout = ProjectLayout.VANILLA,
) -> Path:
    """Scaffolds a new addon project with one directory per requested pack."""
    if layout is not ProjectLayout.VANILLA:
        raise NotSupportedError(f"The '{layout}' project layout is not implemented yet")
    unsupported = [pack for pack in packs if pack not in PACK_SUFFIXES]
    if unsupported:
        raise NotSupportedError(
            f"Creating {', '.join(unsupported)} packs is not implemented yet"
        )

    project_dir = Path(path).resolve()
    config_path = project_dir / CONFIG_FILENAME
    if config_path.exists():
        raise FileExistsError(f"Configuration already exists: {config_path}")

    pack_dirs = {f"{name}{PACK_SUFFIXES[pack]}": pack for pack in dict.fromkeys(packs)}
    for dirname in pack_dirs:
        if (project_dir / dirname).exists():
            raise FileExistsError(f"Directory already exists: {project_dir / dirname}")

    project_dir.mkdir(parents=True, exist_ok=True)
    for dirname, pack_type in pack_dirs.items():
        pack_dir = project_dir / dirname
        pack_dir.mkdir()
        (pack_dir / "manifest.json").write_text(
            render_manifest(name, description, pack_type), encoding="utf-8"
        )

    config = AddonConfig(name=name, description=description, projects=pack_dirs)
    write_config(config_path, config)

    gitignore_path = project_dir / ".gitignore"
    if not gitignore_path.exists():
        template = _get_template_env().get_template("gitignore.j2")
        gitignore_path.write_text(
            template.render(build_path=config.build.build_path), encoding="utf-8"
        )
    return project_dir
