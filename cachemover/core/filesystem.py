"""
File system primitives used by cachemover.

This module wraps the handful of file operations the migration needs:
- Executable lookup and path-glob probing for detection
- Recursive tree copy (overwriting existing files)
- Tree size computation that surfaces unreadable entries
- Guarded recursive deletion and atomic file writes

Platform differences (read-only files on Windows, executable extensions)
are handled here so the callers stay platform-neutral.
"""

import glob
import os
import shutil
import stat
import tempfile
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

IS_WINDOWS = os.name == "nt"


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is located under parent directory.

    Args:
        path: Path to check
        parent: Parent directory

    Returns:
        True if path is under (or equal to) parent
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def expand_path(template: str) -> Optional[str]:
    """
    Expand ``~`` and environment variables in a path string.

    Both ``$VAR`` and, on Windows, ``%VAR%`` references are expanded.
    A reference that cannot be resolved leaves the path unusable, so
    None is returned instead of a literal ``$VAR`` path.

    Example:
        >>> expand_path("~/.npm")
        '/home/user/.npm'
        >>> expand_path("$NOT_SET/cache") is None
        True
    """
    expanded = os.path.expanduser(os.path.expandvars(template))
    if "$" in expanded or (IS_WINDOWS and "%" in expanded):
        return None
    return expanded


def find_executable(name: str) -> Optional[Path]:
    """
    Find an executable on the search path.

    Lookup errors (unreadable PATH entries, invalid names) are treated
    as "not found".

    Example:
        >>> find_executable("git")
        PosixPath('/usr/bin/git')
    """
    try:
        found = shutil.which(name)
    except (OSError, ValueError):
        return None
    return Path(found) if found else None


def glob_exists(pattern: str) -> bool:
    """
    Check whether a path pattern (possibly with wildcards) matches anything.

    Args:
        pattern: Path or glob pattern; ``~`` and environment variables allowed

    Returns:
        True if at least one filesystem entry matches
    """
    expanded = expand_path(pattern)
    if expanded is None:
        return False
    if not glob.has_magic(expanded):
        return os.path.exists(expanded)
    for _ in glob.iglob(expanded):
        return True
    return False


# ============================================================================
# Size Computation
# ============================================================================


def _raise_walk_error(error: OSError) -> None:
    raise error


def directory_size(path: Union[str, Path]) -> int:
    """
    Calculate total size of a directory tree in bytes.

    Symlinks are neither followed nor counted, so a tree copied with
    ``recursive_copy(..., symlinks=True)`` measures the same as its source.
    Unlike a plain ``rglob`` walk, unreadable subdirectories raise instead
    of being skipped silently, so a partially readable cache is not
    mistaken for a small one.

    Raises:
        OSError: If a directory or file in the tree cannot be read

    Example:
        >>> size = directory_size('/tmp/mydir')
        >>> print(f"Directory is {size / 1024 / 1024:.2f} MB")
    """
    total = 0
    for root, _dirs, files in os.walk(path, onerror=_raise_walk_error):
        for name in files:
            file_path = os.path.join(root, name)
            info = os.lstat(file_path)
            if stat.S_ISREG(info.st_mode):
                total += info.st_size
    return total


# ============================================================================
# Copy / Delete / Write
# ============================================================================


def _copy_symlink(src: Path, dest: Path) -> None:
    """Recreate ``src`` as a link at ``dest``, replacing a file or link there."""
    link_target = os.readlink(src)
    if dest.is_symlink() or dest.is_file():
        dest.unlink()
    os.symlink(link_target, dest, target_is_directory=src.is_dir())


def recursive_copy(
    source: Union[str, Path],
    destination: Union[str, Path],
    progress_callback: Optional[Callable[[Path], None]] = None,
    symlinks: bool = False,
) -> int:
    """
    Recursively copy a directory tree, overwriting existing files.

    The destination (and its parents) is created if absent. Existing
    files at the destination are replaced; extra files already there are
    left alone.

    Args:
        source: Source directory
        destination: Destination directory
        progress_callback: Optional callback called for each copied file
        symlinks: If True, copy symlinks as symlinks, dangling ones included
            (default: follow symlinks)

    Returns:
        Number of files (and links) copied

    Raises:
        FilesystemError: If source is missing or not a directory
        OSError: If a file cannot be read or written

    Example:
        >>> recursive_copy('/source', '/dest', lambda p: print(f"Copied {p}"))
    """
    source = Path(source)
    destination = Path(destination)

    if not source.exists():
        raise FilesystemError(f"Source does not exist: {source}")
    if not source.is_dir():
        raise FilesystemError(f"Source is not a directory: {source}")

    destination.mkdir(parents=True, exist_ok=True)
    copied = 0

    for root, dirs, files in os.walk(
        source, onerror=_raise_walk_error, followlinks=not symlinks
    ):
        rel_root = Path(root).relative_to(source)
        target_root = destination / rel_root
        for name in dirs + files:
            src_item = Path(root) / name
            dest_item = target_root / name
            if symlinks and src_item.is_symlink():
                _copy_symlink(src_item, dest_item)
            elif name in dirs:
                dest_item.mkdir(parents=True, exist_ok=True)
                continue
            else:
                if dest_item.exists() and not os.access(dest_item, os.W_OK):
                    os.chmod(dest_item, stat.S_IWRITE | stat.S_IREAD)
                shutil.copy2(src_item, dest_item)
            copied += 1
            if progress_callback:
                progress_callback(src_item)

    return copied


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix, or is a filesystem root
        FilesystemError: If deletion fails
    """
    path = Path(path).resolve()

    if path == Path(path.anchor):
        raise ValueError(f"Refusing to delete filesystem root '{path}'")

    if require_prefix is not None:
        prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    def handle_remove_readonly(func, failed_path, exc_info):
        """Clear the read-only bit (common in Windows caches) and retry once."""
        if not os.access(failed_path, os.W_OK):
            os.chmod(failed_path, stat.S_IWRITE)
            func(failed_path)
        else:
            raise exc_info[1]

    try:
        shutil.rmtree(path, onerror=handle_remove_readonly)
    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}")


def atomic_write(file_path: Union[str, Path], content: str, encoding: str = "utf-8"):
    """
    Write a text file atomically using temp file + rename.

    The file is never left partially written. Permissions of an existing
    file are preserved.

    Raises:
        OSError: If the directory is not writable or the rename fails
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    mode = None
    if file_path.exists():
        mode = stat.S_IMODE(file_path.stat().st_mode)

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        with open(temp_fd, "w", encoding=encoding) as f:
            f.write(content)
        if mode is not None:
            os.chmod(temp_path, mode)
        temp_path.replace(file_path)
    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def first_existing_directory(paths: Iterable[str]) -> Optional[Path]:
    """Return the first path in ``paths`` that expands to an existing directory."""
    for template in paths:
        expanded = expand_path(template)
        if expanded and os.path.isdir(expanded):
            return Path(expanded)
    return None


def format_size(size: int) -> str:
    """
    Format a byte count for display.

    Example:
        >>> format_size(1536)
        '1.5 KB'
    """
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            break
        value /= 1024
    if unit == "B":
        return f"{int(value)} B"
    return f"{value:.1f} {unit}"
