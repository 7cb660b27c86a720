"""Clean action - removes build artifacts.

Equivalent to ``rm -rf build bin``: every path in the artifact set is
removed recursively, read-only entries included, and a path that does not
exist is skipped silently.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import sys
from collections.abc import Iterable
from pathlib import Path

from .state import CleanError

logger = logging.getLogger(__name__)


def _make_writable_and_retry(func, path, exc) -> None:
    """rmtree error hook: clear the read-only bit and retry a failed removal once.

    ``exc`` is the exception (``onexc``) or an exc_info tuple (``onerror``).
    Failures other than unlink/rmdir, such as opening or scanning a
    directory, are re-raised unchanged.
    """
    error = exc[1] if isinstance(exc, tuple) else exc
    if func not in (os.unlink, os.rmdir):
        raise error
    try:
        os.chmod(path, stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
    except FileNotFoundError:
        return
    func(path)


def _rmtree(path: Path) -> None:
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_make_writable_and_retry)
    else:
        shutil.rmtree(path, onerror=_make_writable_and_retry)


def remove_path(path: Path) -> bool:
    """Remove a file, symlink or directory tree.

    Args:
        path: Path to remove

    Returns:
        True if something was removed, False if the path did not exist

    Raises:
        OSError: If the path exists but cannot be removed
    """
    try:
        # Symlinks are unlinked, never followed
        if path.is_dir() and not path.is_symlink():
            _rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        return False
    return True


def check_artifact(target: Path, root: Path, artifact: Path | None = None) -> None:
    """Refuse a target that would take the root (or anything above it) with it.

    Raises:
        CleanError: If ``target`` resolves to ``root`` or an ancestor of ``root``
    """
    resolved_root = root.resolve()
    # A symlink is unlinked, not followed, so only its location matters
    resolved = target.parent.resolve() / target.name if target.is_symlink() else target.resolve()
    if resolved == resolved_root or resolved in resolved_root.parents:
        name = artifact if artifact is not None else target
        raise CleanError(f"Refusing to remove {name}: it contains the project root {resolved_root}")


def remove_artifacts(artifacts: Iterable[Path], root: Path | None = None) -> list[str]:
    """Remove every artifact path, relative to ``root`` (default: CWD).

    Returns:
        The artifact paths that existed and were removed

    Raises:
        CleanError: If an artifact is the root itself or one of its ancestors;
            nothing is removed in that case
    """
    base = root if root is not None else Path.cwd()
    targets = [(artifact, base / artifact) for artifact in artifacts]
    for artifact, target in targets:
        check_artifact(target, base, artifact)

    removed: list[str] = []
    for artifact, target in targets:
        if remove_path(target):
            logger.info(f"Removed {target}")
            removed.append(str(artifact))
        else:
            logger.debug(f"Nothing to remove at {target}")
    return removed
