"""
File system traversal: walk directories and collect C# source files.

This module provides utilities for recursively traversing directories to find
C# source files (.cs) for style checking. Build output, package caches, IDE
state and version-control directories are skipped. Test projects are NOT
skipped: test code follows the same conventions (and test-method-naming only
applies there).

Typical usage:
    from pathlib import Path
    from stylecheck.traversal import collect_paths, find_cs_files

    # Find every .cs file under a solution directory
    cs_files = find_cs_files(Path("./MySolution"))

    # Mix explicit files and directories, as the CLI does
    files = collect_paths([Path("src"), Path("tools/Build.cs")])

    # Extra directories to skip
    sources = find_cs_files(Path("./MySolution"), ignore_dirs=DEFAULT_IGNORE_DIRS | {"Generated"})
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional, Set

logger = logging.getLogger(__name__)

# Default directories to ignore during traversal
DEFAULT_IGNORE_DIRS: Set[str] = {
    # MSBuild output
    "bin",
    "obj",
    "artifacts",
    "TestResults",

    # Package and dependency directories
    "packages",
    "node_modules",

    # Version control
    ".git",
    ".svn",
    ".hg",

    # IDE and editor directories
    ".vs",
    ".vscode",
    ".idea",
}


def is_cs_file(path: Path) -> bool:
    """
    Check if a file is a C# source file (.cs extension).

    Args:
        path: Path to the file to check.

    Returns:
        True if the file has a .cs extension, False otherwise.

    Examples:
        >>> is_cs_file(Path("Program.cs"))
        True
        >>> is_cs_file(Path("App.csproj"))
        False
    """
    return path.suffix.lower() == ".cs"


def should_ignore_directory(dir_path: Path, ignore_dirs: Set[str]) -> bool:
    """
    Check if a directory should be ignored during traversal.

    Only the directory name is compared (case-sensitive), not the full path.

    Examples:
        >>> should_ignore_directory(Path("obj"), {"bin", "obj"})
        True
        >>> should_ignore_directory(Path("src"), {"bin", "obj"})
        False
    """
    return dir_path.name in ignore_dirs


def find_cs_files(
    root: Path,
    ignore_dirs: Optional[Set[str]] = None,
    follow_symlinks: bool = False,
    filter_fn: Optional[Callable[[Path], bool]] = None,
) -> list[Path]:
    """
    Recursively find all C# source files in a directory tree.

    Args:
        root: Root directory to start traversal from.
        ignore_dirs: Set of directory names to skip. If None, uses DEFAULT_IGNORE_DIRS.
        follow_symlinks: If True, follow symbolic links during traversal.
                         If False (default), symlinks are skipped.
        filter_fn: Optional additional filter function. If provided, only files
                   for which filter_fn(path) returns True are included.

    Returns:
        List of Path objects for all .cs files found, sorted by path.

    Raises:
        FileNotFoundError: If the root directory does not exist.
        NotADirectoryError: If root is not a directory.

    Notes:
        - Permission errors on subdirectories are logged but do not stop traversal.
        - The root path is resolved to an absolute path before traversal.
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
    logger.debug(
        "Traversal config: follow_symlinks=%s, ignore_dirs=%s",
        follow_symlinks,
        sorted(ignore_dirs),
    )

    collected_files: list[Path] = []

    def _walk_directory(current_dir: Path) -> None:
        """Recursive helper to walk directory tree."""
        try:
            for entry in current_dir.iterdir():
                if entry.is_symlink() and not follow_symlinks:
                    logger.debug("Skipping symlink: %s", entry)
                    continue

                if entry.is_dir():
                    if should_ignore_directory(entry, ignore_dirs):
                        logger.debug("Ignoring directory: %s", entry)
                        continue
                    _walk_directory(entry)

                elif entry.is_file() and is_cs_file(entry):
                    if filter_fn is not None and not filter_fn(entry):
                        logger.debug("Filtered out by custom filter: %s", entry)
                        continue
                    logger.debug("Found source file: %s", entry)
                    collected_files.append(entry)

        except PermissionError as e:
            logger.warning("Permission denied accessing directory %s: %s", current_dir, e)
        except OSError as e:
            logger.warning("Error accessing directory %s: %s", current_dir, e)

    _walk_directory(root)

    # Sort for deterministic ordering
    collected_files.sort()

    logger.info(
        "Traversal complete: found %d source file(s) in %s",
        len(collected_files),
        root,
    )

    return collected_files


def collect_paths(
    paths: Iterable[Path],
    ignore_dirs: Optional[Set[str]] = None,
) -> list[Path]:
    """
    Expand CLI path arguments into a sorted, de-duplicated list of .cs files.

    Directories are traversed with find_cs_files(); files are taken as given
    (whatever their extension, since the user named them explicitly).

    Raises:
        FileNotFoundError: If a path does not exist.
    """
    found: set[Path] = set()
    for path in paths:
        if path.is_dir():
            found.update(find_cs_files(path, ignore_dirs=ignore_dirs))
        elif path.exists():
            found.add(path.resolve())
        else:
            raise FileNotFoundError(f"Path does not exist: {path}")
    return sorted(found)
