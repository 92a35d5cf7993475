"""Drives a full addon build: profile resolution, staging, transforms, deployment and packaging."""

from collections.abc import Callable
from pathlib import Path

from attrs import define
from pyvider.telemetry import logger

from ..exceptions import BuildError, NotSupportedError, ProfileNotFoundError
from ..models import AddonConfig, BuildProfile, ProjectLayout
from .archiver import ARCHIVE_EXTENSION, archive_projects
from .deploy import DeployStatus, deploy_project, get_com_mojang_dir
from .staging import (
    WORKSPACES_DIRNAME,
    StagingWorkspace,
    create_ignore_func,
    ensure_dir,
)
from .transforms import TransformPipeline, TransformRegistry


@define(frozen=True)
class BuildOutcome:
    failed: bool
    workspace: Path | None = None
    archive_path: Path | None = None


class BuildOrchestrator:
    DEFAULT_ARCHIVE_STEM = "addon"

    def __init__(
        self,
        config: AddonConfig | None,
        project_root: Path,
        profile_name: str | None = None,
        quiet: bool = False,
        registry: TransformRegistry | None = None,
        com_mojang_resolver: Callable[[], Path] = get_com_mojang_dir,
        max_workers: int | None = None,
    ) -> None:
        self.config = config
        self.project_root = project_root
        self.profile_name = profile_name
        self.quiet = quiet
        self.registry = registry
        self.com_mojang_resolver = com_mojang_resolver
        self.max_workers = max_workers
        self._com_mojang_dir: Path | None = None

    def resolve_profile(self, config: AddonConfig) -> BuildProfile:
        name = (
            self.profile_name
            if self.profile_name is not None
            else config.build.default_profile
        )
        profile = config.build.profiles.get(name)
        if profile is None:
            raise ProfileNotFoundError(name, config.build.profiles.keys())
        return profile

    def build(self) -> BuildOutcome:
        """Runs the build, logging any fatal error and reporting it as a failed outcome."""
        workspace: StagingWorkspace | None = None
        try:
            config = self._effective_config()
            profile = self.resolve_profile(config)
            self._log_profile(profile)

            target_dir = self.project_root / config.build.build_path
            ensure_dir(target_dir)
            build_dir = target_dir / WORKSPACES_DIRNAME
            ensure_dir(build_dir)
            workspace = StagingWorkspace.create(build_dir)

            strategy = self._strategy_for(config.project_type)
            archive_path = strategy(config, profile, workspace, target_dir)
            workspace.mark_complete()
        except BuildError as e:
            logger.error(str(e))
            return BuildOutcome(
                failed=True, workspace=workspace.root if workspace else None
            )

        return BuildOutcome(
            failed=False, workspace=workspace.root, archive_path=archive_path
        )

    def _effective_config(self) -> AddonConfig:
        if self.config is not None:
            return self.config
        logger.warning(
            "No packsmith.json found, using built-in defaults. "
            "It is recommended to create one to enable more build options."
        )
        return AddonConfig.default()

    def _log_profile(self, profile: BuildProfile) -> None:
        if self.quiet:
            return
        logger.info(f"Starting build on profile '{profile.name}'")
        for flag, enabled in profile.to_dict().items():
            logger.info(f"[{profile.name}] {flag}: {enabled}")

    def _strategy_for(
        self, layout: ProjectLayout
    ) -> Callable[[AddonConfig, BuildProfile, StagingWorkspace, Path], Path | None]:
        strategies = {ProjectLayout.VANILLA: self._build_vanilla}
        strategy = strategies.get(layout)
        if strategy is None:
            raise NotSupportedError(
                f"Building '{layout}' projects is not implemented yet"
            )
        return strategy

    def _com_mojang(self) -> Path:
        if self._com_mojang_dir is None:
            self._com_mojang_dir = self.com_mojang_resolver()
        return self._com_mojang_dir

    def _build_vanilla(
        self,
        config: AddonConfig,
        profile: BuildProfile,
        workspace: StagingWorkspace,
        target_dir: Path,
    ) -> Path | None:
        pipeline = TransformPipeline(
            registry=self.registry, max_workers=self.max_workers, quiet=self.quiet
        )
        staged: list[tuple[Path, str]] = []

        for project, pack_type in config.projects.items():
            if not self.quiet:
                logger.info(f"Building {pack_type} pack '{project}'")

            source_root = self.project_root / project
            ignore = (
                create_ignore_func(source_root, config.build.exclude)
                if config.build.exclude
                else None
            )
            staged_root = workspace.stage(project, source_root, ignore)

            report = pipeline.run(staged_root, profile)
            if not report.ok:
                raise BuildError(
                    f"{len(report.failed)} file(s) in '{project}' could not be transformed"
                )
            if report.degraded:
                logger.warning(
                    f"{len(report.degraded)} file(s) in '{project}' were left untransformed"
                )

            if profile.dev_folder:
                status = deploy_project(staged_root, pack_type, project, self._com_mojang)
                if status is DeployStatus.UNSUPPORTED:
                    logger.warning(
                        f"Deploying {pack_type} packs is not supported yet, skipping '{project}'"
                    )

            staged.append((staged_root, project))

        if not profile.package:
            return None

        archive_path = target_dir / (
            f"{config.name or self.DEFAULT_ARCHIVE_STEM}{ARCHIVE_EXTENSION}"
        )
        archive_projects(staged, archive_path, quiet=self.quiet)
        return archive_path


def build(
    profile_name: str | None,
    config: AddonConfig | None,
    project_root: Path | None = None,
    quiet: bool = False,
) -> BuildOutcome:
    """Builds the addon described by ``config`` rooted at ``project_root`` (default: cwd)."""
    orchestrator = BuildOrchestrator(
        config=config,
        project_root=project_root or Path.cwd(),
        profile_name=profile_name,
        quiet=quiet,
    )
    return orchestrator.build()
