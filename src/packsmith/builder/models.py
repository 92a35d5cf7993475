"""Immutable configuration models for an addon build."""

import enum
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any, Self, TypeVar

from attrs import define, field

from .exceptions import ConfigError

TRANSFORM_FLAGS: tuple[str, ...] = ("minify", "obfuscate", "compress", "encrypt")
PROFILE_FLAGS: tuple[str, ...] = (*TRANSFORM_FLAGS, "dev_folder", "package")


class PackType(enum.StrEnum):
    BEHAVIOUR = "Behaviour"
    RESOURCE = "Resource"
    SKIN = "Skin"
    WORLD_TEMPLATE = "WorldTemplate"


class ProjectLayout(enum.StrEnum):
    VANILLA = "Vanilla"
    REGOLITH = "Regolith"
    DASH = "Dash"


E = TypeVar("E", bound=enum.StrEnum)


def _parse_enum(enum_cls: type[E], value: Any, context: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigError(
            f"Invalid value {value!r} for {context}, expected one of: {choices}"
        ) from None


def _expect(data: Any, kind: type, context: str) -> Any:
    if not isinstance(data, kind):
        raise ConfigError(
            f"Expected {context} to be {kind.__name__}, got {type(data).__name__}"
        )
    return data


@define(frozen=True, slots=True)
class BuildProfile:
    name: str
    minify: bool = False
    obfuscate: bool = False
    compress: bool = False
    encrypt: bool = False
    dev_folder: bool = False
    package: bool = False

    @classmethod
    def from_dict(cls, name: str, data: Any) -> Self:
        data = _expect(data, dict, f"profile '{name}'")
        unknown = set(data) - set(PROFILE_FLAGS)
        if unknown:
            raise ConfigError(
                f"Unknown options in profile '{name}': {sorted(unknown)}"
            )
        toggles = {}
        for flag in PROFILE_FLAGS:
            value = data.get(flag, False)
            if not isinstance(value, bool):
                raise ConfigError(
                    f"Option '{flag}' in profile '{name}' must be true or false"
                )
            toggles[flag] = value
        return cls(name=name, **toggles)

    def to_dict(self) -> dict[str, bool]:
        return {flag: getattr(self, flag) for flag in PROFILE_FLAGS}

    def enabled_transforms(self) -> list[str]:
        return [flag for flag in TRANSFORM_FLAGS if getattr(self, flag)]


def _default_profiles() -> dict[str, BuildProfile]:
    return {
        "debug": BuildProfile(name="debug", dev_folder=True),
        "release": BuildProfile(
            name="release",
            minify=True,
            obfuscate=True,
            compress=True,
            encrypt=True,
            package=True,
        ),
    }


@define(frozen=True, slots=True)
class BuildSettings:
    build_path: str = "target"
    default_profile: str = "debug"
    profiles: dict[str, BuildProfile] = field(factory=_default_profiles)
    exclude: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> Self:
        data = _expect(data, dict, "'build'")
        defaults = cls()
        raw_profiles = data.get("profiles")
        if raw_profiles is None:
            profiles = defaults.profiles
        else:
            raw_profiles = _expect(raw_profiles, dict, "'build.profiles'")
            profiles = {
                name: BuildProfile.from_dict(name, raw)
                for name, raw in raw_profiles.items()
            }
        exclude = _expect(data.get("exclude", []), list, "'build.exclude'")
        return cls(
            build_path=_expect(
                data.get("build_path", defaults.build_path), str, "'build.build_path'"
            ),
            default_profile=_expect(
                data.get("default_profile", defaults.default_profile),
                str,
                "'build.default_profile'",
            ),
            profiles=profiles,
            exclude=tuple(str(pattern) for pattern in exclude),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "build_path": self.build_path,
            "default_profile": self.default_profile,
            "profiles": {
                name: profile.to_dict() for name, profile in self.profiles.items()
            },
        }
        if self.exclude:
            result["exclude"] = list(self.exclude)
        return result


def _project_parts(path: str) -> tuple[str, ...]:
    """Splits a declared project path, rejecting anything that could leave its parent."""
    if PureWindowsPath(path).anchor or PurePosixPath(path).is_absolute():
        raise ConfigError(f"Project path '{path}' must be relative")
    parts = tuple(path.replace("\\", "/").split("/"))
    if any(part in ("", ".", "..") for part in parts):
        raise ConfigError(
            f"Project path '{path}' must not contain empty, '.' or '..' segments"
        )
    return parts


def _check_project_paths(projects: dict[str, Any]) -> None:
    seen: dict[tuple[str, ...], str] = {}
    for path in projects:
        parts = _project_parts(path)
        for other_parts, other in seen.items():
            shorter = min(len(parts), len(other_parts))
            if parts[:shorter] == other_parts[:shorter]:
                raise ConfigError(
                    f"Project paths '{other}' and '{path}' overlap"
                )
        seen[parts] = path


@define(frozen=True, slots=True)
class AddonConfig:
    """Contents of a project's ``packsmith.json``.

    ``projects`` maps each pack directory, relative to the project root, to its
    pack type. Iteration follows declaration order.
    """

    name: str = ""
    description: str = ""
    authors: tuple[str, ...] | None = None
    project_type: ProjectLayout = ProjectLayout.VANILLA
    projects: dict[str, PackType] = field(factory=dict)
    build: BuildSettings = field(factory=BuildSettings)

    @classmethod
    def default(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: Any) -> Self:
        data = _expect(data, dict, "the configuration")
        authors = data.get("authors")
        if authors is not None:
            authors = tuple(_expect(authors, list, "'authors'"))
        projects = _expect(data.get("projects", {}), dict, "'projects'")
        _check_project_paths(projects)
        return cls(
            name=_expect(data.get("name", ""), str, "'name'"),
            description=_expect(data.get("description", ""), str, "'description'"),
            authors=authors,
            project_type=_parse_enum(
                ProjectLayout,
                data.get("project_type", ProjectLayout.VANILLA.value),
                "'project_type'",
            ),
            projects={
                path: _parse_enum(PackType, pack_type, f"project '{path}'")
                for path, pack_type in projects.items()
            },
            build=BuildSettings.from_dict(data.get("build", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
        }
        if self.authors is not None:
            result["authors"] = list(self.authors)
        result["project_type"] = self.project_type.value
        result["projects"] = {
            path: pack_type.value for path, pack_type in self.projects.items()
        }
        result["build"] = self.build.to_dict()
        return result
