"""Pytest fixtures for the entire packsmith test suite."""

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from packsmith.builder.config import CONFIG_FILENAME
from packsmith.builder.packaging.deploy import COM_MOJANG_ENV

BP_MANIFEST = """{
  // behaviour pack header
  "format_version": 2,
  "header": {
    "name": "Test Addon",
    "url": "https://example.com/a//b",
    "version": [1, 0, 0]
  },
  /* modules follow */
  "modules": [{"type": "data", "version": [1, 0, 0]}]
}
"""

RP_MANIFEST = """{
  "format_version": 2,
  "header": {"name": "Test Addon Resources", "version": [1, 0, 0]},
  "modules": [{"type": "resources", "version": [1, 0, 0]}]
}
"""

ICON_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR fake icon"

PROFILES: dict[str, dict[str, bool]] = {
    "debug": {"dev_folder": True},
    "release": {
        "minify": True,
        "obfuscate": True,
        "compress": True,
        "encrypt": True,
        "package": True,
    },
    "package": {"package": True},
    "minify": {"minify": True},
    "everything": {"minify": True, "dev_folder": True, "package": True},
}


@pytest.fixture
def make_addon(tmp_path: Path) -> Callable[..., Path]:
    """A factory fixture that lays out an addon with a behaviour and a resource pack."""

    def _make_addon(
        name: str = "TestAddon",
        projects: dict[str, str] | None = None,
        build: dict[str, Any] | None = None,
    ) -> Path:
        root = tmp_path / "addon"
        bp = root / "TestBP"
        rp = root / "TestRP"
        (bp / "scripts").mkdir(parents=True)
        (rp / "textures" / "blocks").mkdir(parents=True)

        (bp / "manifest.json").write_text(BP_MANIFEST)
        (bp / "pack_icon.png").write_bytes(ICON_BYTES)
        (bp / "scripts" / "main.js").write_text("// entry\nconsole.log('hi');\n")
        (rp / "manifest.json").write_text(RP_MANIFEST)
        (rp / "pack_icon.png").write_bytes(ICON_BYTES + b" rp")
        (rp / "textures" / "blocks" / "stone.png").write_bytes(bytes(range(256)))

        config = {
            "name": name,
            "description": "An addon used in tests",
            "project_type": "Vanilla",
            "projects": projects
            if projects is not None
            else {"TestBP": "Behaviour", "TestRP": "Resource"},
            "build": build
            if build is not None
            else {
                "build_path": "target",
                "default_profile": "debug",
                "profiles": PROFILES,
            },
        }
        (root / CONFIG_FILENAME).write_text(json.dumps(config, indent=2))
        return root

    return _make_addon


@pytest.fixture
def com_mojang(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Points development pack deployment at a temporary com.mojang folder."""
    path = tmp_path / "com.mojang"
    monkeypatch.setenv(COM_MOJANG_ENV, str(path))
    return path


def _tree_bytes(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def tree_bytes() -> Callable[[Path], dict[str, bytes]]:
    """Maps every file under a directory to its contents, keyed by relative POSIX path."""
    return _tree_bytes
