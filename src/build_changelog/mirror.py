"""Copies a source tree into the changelog directory.

The copy is best effort: an entry that cannot be copied is logged and
recorded, and the walk moves on. Nothing in the destination is ever deleted,
so mirroring an unchanged tree twice leaves the destination as it was.
"""

import logging
import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from .git_wrapper import GitRepo
from .logs import require_sink


@dataclass(frozen=True)
class MirrorFailure:
    """An entry the mirror could not copy.

    Attributes:
        path (Path): The source entry.
        error (str): The underlying error text.
    """

    path: Path
    error: str


def git_ignore_check(source_root: Path) -> Callable[[str], bool]:
    """Builds an ignore predicate backed by ``git check-ignore`` in ``source_root``."""
    return GitRepo(source_root).check_ignore


def mirror(
    source_root: Path,
    dest_root: Path,
    exclude_names: Iterable[str],
    log: logging.Logger,
    is_ignored: Callable[[str], bool] | None = None,
) -> list[MirrorFailure]:
    """Copies every non-ignored entry of ``source_root`` into ``dest_root``.

    Entries are skipped when their name is one of ``exclude_names`` (at any
    depth) or when ``is_ignored`` reports their path, relative to
    ``source_root``, as ignored. Directories are created as needed and files
    are overwritten.

    Args:
        source_root (Path): The tree to copy.
        dest_root (Path): The changelog directory receiving the copy.
        exclude_names (Iterable[str]): Entry names never copied.
        log (logging.Logger): The run's log sink.
        is_ignored (Callable[[str], bool] | None): Ignore predicate. Defaults
            to ``git check-ignore`` run in ``source_root``.

    Returns:
        list[MirrorFailure]: The entries that could not be copied.
    """
    log = require_sink(log)
    excluded = frozenset(exclude_names)
    if is_ignored is None:
        is_ignored = git_ignore_check(source_root)

    failures: list[MirrorFailure] = []
    _copy_tree(source_root, source_root, dest_root, excluded, is_ignored, log, failures)
    return failures


def _copy_tree(
    directory: Path,
    source_root: Path,
    dest_root: Path,
    excluded: frozenset[str],
    is_ignored: Callable[[str], bool],
    log: logging.Logger,
    failures: list[MirrorFailure],
) -> None:
    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        _record(log, failures, directory, "failed to read directory", e)
        return

    for path in entries:
        if path.name in excluded:
            continue

        try:
            relative = path.relative_to(source_root)
        except ValueError:
            continue

        if is_ignored(relative.as_posix()):
            continue

        log.info(str(path))
        dest_path = dest_root / relative

        if path.is_dir():
            try:
                dest_path.mkdir(exist_ok=True)
            except OSError as e:
                _record(log, failures, path, "failed to create directory", e)
            _copy_tree(
                path, source_root, dest_root, excluded, is_ignored, log, failures
            )
        else:
            try:
                shutil.copy(path, dest_path)
            except OSError as e:
                _record(log, failures, path, "failed to copy file", e)


def _record(
    log: logging.Logger,
    failures: list[MirrorFailure],
    path: Path,
    what: str,
    error: OSError,
) -> None:
    log.error(f"{what}: {path}")
    log.error(str(error))
    failures.append(MirrorFailure(path, str(error)))
