"""
Finding the translation units to analyze.

A scan target is either a single C file or a directory. Directories are
walked recursively for .c files (and .h files when requested), skipping
build output, dependency and VCS directories. Results are sorted so that
reports come out in a stable order.

Typical usage:
    from pathlib import Path
    from scalecheck.traversal import collect_targets

    files = collect_targets(Path("./src"), include_headers=True)
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Set

logger = logging.getLogger(__name__)

C_SUFFIXES = frozenset({".c"})
HEADER_SUFFIXES = frozenset({".h"})

# Directory names never descended into.
DEFAULT_IGNORE_DIRS: Set[str] = {
    "build",
    "Build",
    "builds",
    "dist",
    "out",
    "bin",
    "obj",
    "node_modules",
    "vendor",
    "third_party",
    "external",
    "deps",
    ".git",
    ".svn",
    ".hg",
    ".vscode",
    ".idea",
    ".vs",
    "venv",
    ".venv",
    "__pycache__",
    ".cache",
    ".pytest_cache",
}


class TargetError(ValueError):
    """The scan target cannot be analyzed (wrong extension, not a file or directory)."""


def is_c_file(path: Path) -> bool:
    return path.suffix.lower() in C_SUFFIXES


def is_header_file(path: Path) -> bool:
    return path.suffix.lower() in HEADER_SUFFIXES


def is_source_file(path: Path, include_headers: bool = False) -> bool:
    """
    True for .c files, and for .h files when include_headers is set.

    >>> is_source_file(Path("util.h"))
    False
    >>> is_source_file(Path("util.h"), include_headers=True)
    True
    """
    return is_c_file(path) or (include_headers and is_header_file(path))


def should_ignore_directory(dir_path: Path, ignore_dirs: Set[str]) -> bool:
    """Match on the directory name only; the comparison is case-sensitive."""
    return dir_path.name in ignore_dirs


def find_source_files(
    root: Path,
    include_headers: bool = False,
    ignore_dirs: Optional[Set[str]] = None,
    follow_symlinks: bool = False,
    filter_fn: Optional[Callable[[Path], bool]] = None,
) -> list[Path]:
    """
    Recursively collect C sources under root, sorted by path.

    Args:
        root: Directory to walk.
        include_headers: Also collect .h files.
        ignore_dirs: Directory names to skip; DEFAULT_IGNORE_DIRS when None.
        follow_symlinks: Symlinked files and directories are skipped unless set.
        filter_fn: Extra predicate a file must satisfy to be collected.

    Raises:
        FileNotFoundError: root does not exist.
        NotADirectoryError: root is not a directory.

    Unreadable subdirectories are logged and skipped.
    """
    if ignore_dirs is None:
        ignore_dirs = DEFAULT_IGNORE_DIRS

    root = root.resolve()
    if not root.exists():
        logger.error("Root directory does not exist: %s", root)
        raise FileNotFoundError(f"Root directory does not exist: {root}")
    if not root.is_dir():
        logger.error("Root path is not a directory: %s", root)
        raise NotADirectoryError(f"Root path is not a directory: {root}")

    logger.info("Starting traversal from: %s", root)
    logger.debug("Traversal config: include_headers=%s, follow_symlinks=%s", include_headers, follow_symlinks)

    collected: list[Path] = []
    pending = [root]
    while pending:
        current = pending.pop()
        try:
            entries = list(current.iterdir())
        except OSError as e:
            logger.warning("Error accessing directory %s: %s", current, e)
            continue
        for entry in entries:
            if entry.is_symlink() and not follow_symlinks:
                logger.debug("Skipping symlink: %s", entry)
                continue
            if entry.is_dir():
                if should_ignore_directory(entry, ignore_dirs):
                    logger.debug("Ignoring directory: %s", entry)
                else:
                    pending.append(entry)
            elif entry.is_file() and is_source_file(entry, include_headers=include_headers):
                if filter_fn is not None and not filter_fn(entry):
                    continue
                collected.append(entry)

    collected.sort()
    logger.info("Traversal complete: found %d source file(s) in %s", len(collected), root)
    return collected


def collect_targets(target: Path, include_headers: bool = False) -> list[Path]:
    """
    Resolve a CLI target into the list of files to analyze.

    A file must be a C source (or a header when include_headers is set);
    a directory is walked with find_source_files(). Anything else raises
    TargetError.
    """
    if target.is_file():
        if not is_source_file(target, include_headers=include_headers):
            expected = ".c or .h" if include_headers else ".c"
            raise TargetError(f"Target file must have {expected} extension, got: {target}")
        return [target]
    if target.is_dir():
        files = find_source_files(target, include_headers=include_headers)
        if not files:
            logger.warning("No C source files found under %s", target)
        return files
    raise TargetError(f"Target path is neither a file nor a directory: {target}")
