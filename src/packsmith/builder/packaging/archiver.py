"""Bundles staged projects into a single ``.mcaddon`` archive."""

from collections.abc import Iterator, Sequence
import os
from pathlib import Path, PurePosixPath
import stat
import tempfile
import zipfile

from pyvider.telemetry import logger

from ..exceptions import ArchiveError

ARCHIVE_EXTENSION = ".mcaddon"
ENTRY_PERMISSIONS = 0o755
READ_BUFFER_SIZE = 64 * 1024

# Zip timestamps cannot predate 1980; a fixed value keeps archives reproducible.
ENTRY_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


def _walk(root: Path) -> Iterator[Path]:
    """Yields ``root`` and everything below it, directories before their contents."""
    yield root
    for child in sorted(root.iterdir()):
        if child.is_dir():
            yield from _walk(child)
        else:
            yield child


def archive_name(project_name: str, relative_path: PurePosixPath) -> str:
    """Builds the entry name for a file of a project, rooted under the project name."""
    parts = (*Path(project_name).parts, *relative_path.parts)
    if Path(project_name).is_absolute() or ".." in parts:
        raise ArchiveError(
            f"Entry for '{project_name}' would escape the archive root"
        )
    name = PurePosixPath(*parts).as_posix()
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        raise ArchiveError(f"{name!r} is not a valid UTF-8 path") from None
    return name


def _directory_info(name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(f"{name}/", date_time=ENTRY_TIMESTAMP)
    info.external_attr = ((stat.S_IFDIR | ENTRY_PERMISSIONS) << 16) | 0x10
    info.compress_type = zipfile.ZIP_STORED
    return info


def _file_info(name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=ENTRY_TIMESTAMP)
    info.external_attr = (stat.S_IFREG | ENTRY_PERMISSIONS) << 16
    info.compress_type = zipfile.ZIP_DEFLATED
    return info


def _write_entries(
    zf: zipfile.ZipFile, projects: Sequence[tuple[Path, str]], quiet: bool
) -> int:
    buffer = bytearray(READ_BUFFER_SIZE)
    view = memoryview(buffer)
    written: set[str] = set()
    for project_root, project_name in projects:
        for path in _walk(project_root):
            relative = PurePosixPath(*path.relative_to(project_root).parts)
            name = archive_name(project_name, relative)
            if name in written:
                raise ArchiveError(f"Duplicate archive entry '{name}'")
            written.add(name)
            if path.is_file():
                if not quiet:
                    logger.info(f"Zipping file {path}")
                with path.open("rb") as src, zf.open(_file_info(name), "w") as dest:
                    while read := src.readinto(buffer):
                        dest.write(view[:read])
            elif name:
                zf.writestr(_directory_info(name), b"")
    return len(written)


def archive_projects(
    projects: Sequence[tuple[Path, str]], output_path: Path, quiet: bool = False
) -> int:
    """
    Writes every staged project into one zip archive at ``output_path``.

    Each entry is named ``<project name>/<path relative to the project root>``,
    so files with the same relative path in different projects stay distinct.
    The archive is written to a temporary file next to ``output_path`` and
    renamed into place only once complete. Returns the number of entries.
    """
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent
        )
    except OSError as e:
        raise ArchiveError(f"Failed to create archive {output_path}: {e}") from e
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh, zipfile.ZipFile(fh, "w") as zf:
            count = _write_entries(zf, projects, quiet)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, output_path)
    except ArchiveError:
        tmp_path.unlink(missing_ok=True)
        raise
    except (OSError, zipfile.LargeZipFile, ValueError) as e:
        tmp_path.unlink(missing_ok=True)
        raise ArchiveError(f"Failed to write archive {output_path}: {e}") from e

    if not quiet:
        logger.info(f"Packaged {count} entries into {output_path}")
    return count
