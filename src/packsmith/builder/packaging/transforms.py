"""
Per-file content transforms applied to a staged project.

Transforms are registered as hooks against one of the profile's transform flags
(``minify``, ``obfuscate``, ``compress``, ``encrypt``). The pipeline walks the
staged tree once and hands each file to every enabled hook whose predicate
matches it; adding a hook never changes traversal or error handling.
"""

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
import enum
import json
import os
from pathlib import Path

from attrs import define, field
from pyvider.telemetry import logger

from ..exceptions import SerializationError, TransformError
from ..models import TRANSFORM_FLAGS, BuildProfile

JSON_EXTENSIONS = frozenset({".json"})

PathPredicate = Callable[[Path], bool]
TransformFunc = Callable[[bytes, Path], bytes]


def strip_json_comments(text: str) -> str:
    """
    Blanks out ``//`` and ``/* */`` comments that appear outside string literals.

    Comment characters are replaced with spaces and newlines are kept, so parse
    errors still report the original line and column.
    """
    out: list[str] = []
    i = 0
    length = len(text)
    in_string = False
    while i < length:
        char = text[i]
        if in_string:
            out.append(char)
            if char == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if char == '"':
                in_string = False
            i += 1
        elif char == '"':
            in_string = True
            out.append(char)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            end = length if end == -1 else end
            out.append(" " * (end - i))
            i = end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = length if end == -1 else end + 2
            out.append("".join(c if c == "\n" else " " for c in text[i:end]))
            i = end
        else:
            out.append(char)
            i += 1
    return "".join(out)


def minify_json(data: bytes, path: Path) -> bytes:
    """Parses JSON (comments allowed) and re-serialises it without whitespace."""
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise SerializationError(f"{path} is not valid UTF-8: {e}") from e

    try:
        value = json.loads(strip_json_comments(text))
    except (ValueError, RecursionError) as e:
        raise SerializationError(f"Failed to deserialize {path}: {e}") from e

    try:
        minified = json.dumps(
            value, ensure_ascii=False, separators=(",", ":"), allow_nan=False
        )
    except (ValueError, RecursionError) as e:
        raise SerializationError(f"Failed to serialize {path}: {e}") from e
    return minified.encode("utf-8")


def has_extension(*extensions: str) -> PathPredicate:
    wanted = frozenset(ext.lower() for ext in extensions)

    def predicate(path: Path) -> bool:
        return path.suffix.lower() in wanted

    return predicate


@define(frozen=True)
class TransformHook:
    flag: str
    name: str
    predicate: PathPredicate
    apply: TransformFunc


class TransformRegistry:
    """Named transform hooks keyed by the profile flag that enables them."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[TransformHook]] = {
            flag: [] for flag in TRANSFORM_FLAGS
        }

    def register(
        self, flag: str, name: str, predicate: PathPredicate, apply: TransformFunc
    ) -> TransformHook:
        if flag not in self._hooks:
            raise ValueError(
                f"Unknown transform flag '{flag}', expected one of {list(TRANSFORM_FLAGS)}"
            )
        hook = TransformHook(flag=flag, name=name, predicate=predicate, apply=apply)
        self._hooks[flag].append(hook)
        return hook

    def hooks(self, flag: str) -> list[TransformHook]:
        return list(self._hooks[flag])

    def hooks_for(self, profile: BuildProfile) -> list[TransformHook]:
        """Returns the hooks enabled by ``profile``, in flag then registration order."""
        return [
            hook for flag in profile.enabled_transforms() for hook in self._hooks[flag]
        ]

    def unwired_flags(self, profile: BuildProfile) -> list[str]:
        return [flag for flag in profile.enabled_transforms() if not self._hooks[flag]]


def default_registry() -> TransformRegistry:
    registry = TransformRegistry()
    registry.register("minify", "json", has_extension(*JSON_EXTENSIONS), minify_json)
    return registry


class FileStatus(enum.Enum):
    UNCHANGED = "unchanged"
    REWRITTEN = "rewritten"
    DEGRADED = "degraded"
    FAILED = "failed"


@define
class TransformReport:
    rewritten: list[Path] = field(factory=list)
    degraded: list[Path] = field(factory=list)
    failed: list[Path] = field(factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class TransformPipeline:
    """
    Applies registered hooks to every regular file under a staged project.

    Files are processed on a thread pool. Each worker returns its own status and
    the calling thread builds the report, so no state is shared between workers.
    """

    def __init__(
        self,
        registry: TransformRegistry | None = None,
        max_workers: int | None = None,
        quiet: bool = False,
    ) -> None:
        self.registry = registry or default_registry()
        self.max_workers = max_workers or os.cpu_count() or 1
        self.quiet = quiet

    def run(self, staged_root: Path, profile: BuildProfile) -> TransformReport:
        for flag in self.registry.unwired_flags(profile):
            logger.warning(
                f"Profile '{profile.name}' enables '{flag}' but no transform is registered for it"
            )

        report = TransformReport()
        hooks = self.registry.hooks_for(profile)
        if not hooks:
            return report

        files = sorted(path for path in staged_root.rglob("*") if path.is_file())
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            statuses = list(pool.map(lambda p: self._process_file(p, hooks), files))

        for path, status in zip(files, statuses):
            if status is FileStatus.REWRITTEN:
                report.rewritten.append(path)
            elif status is FileStatus.DEGRADED:
                report.degraded.append(path)
            elif status is FileStatus.FAILED:
                report.failed.append(path)
        return report

    def _process_file(self, path: Path, hooks: Sequence[TransformHook]) -> FileStatus:
        matching = [hook for hook in hooks if hook.predicate(path)]
        if not matching:
            return FileStatus.UNCHANGED

        try:
            original = path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            return FileStatus.FAILED

        data = original
        degraded = False
        for hook in matching:
            try:
                data = hook.apply(data, path)
            except TransformError as e:
                logger.error(
                    f"Transform '{hook.flag}:{hook.name}' failed, keeping content",
                    error=str(e),
                )
                degraded = True

        if data != original:
            if not self.quiet:
                logger.info(f"Transformed {path}")
            try:
                path.write_bytes(data)
            except OSError as e:
                logger.error(f"Failed to write {path}: {e}")
                return FileStatus.FAILED

        if degraded:
            return FileStatus.DEGRADED
        return FileStatus.REWRITTEN if data != original else FileStatus.UNCHANGED
