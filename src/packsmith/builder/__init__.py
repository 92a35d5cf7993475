# packsmith/src/packsmith/builder/__init__.py
"""
This package contains the core logic for building addon projects into
development pack folders and distributable `.mcaddon` archives.
"""

from .models import (
    AddonConfig,
    BuildProfile,
    PackType,
    ProjectLayout,
)
from .packaging.orchestrator import BuildOrchestrator, BuildOutcome, build

__all__ = [
    "AddonConfig",
    "BuildOrchestrator",
    "BuildOutcome",
    "BuildProfile",
    "PackType",
    "ProjectLayout",
    "build",
]
