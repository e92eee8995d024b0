import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from .config import Config, Settings, load_config
from .git_wrapper import GitRepo
from .logs import mask_credentials, require_sink
from .mirror import MirrorFailure, mirror


class HookAbort(RuntimeError):
    """Raised for conditions that end the run (unreadable source, bad config)."""


@dataclass
class RunResult:
    """Outcome of one hook run.

    Attributes:
        skipped (bool): True if no configuration was found and nothing ran.
        bootstrapped (bool): True if the changelog repository was created.
        failures (list[MirrorFailure]): Entries the mirror could not copy.
    """

    skipped: bool = False
    bootstrapped: bool = False
    failures: list[MirrorFailure] = field(default_factory=list)


def bootstrap(
    dest: Path, config: Config, settings: Settings, log: logging.Logger
) -> None:
    """Initializes a freshly created changelog directory and its remote.

    Args:
        dest (Path): The changelog directory, created by the caller this run.
        config (Config): The participant configuration.
        settings (Settings): The hook settings.
        log (logging.Logger): The run's log sink.

    Raises:
        HookAbort: If the project or participant is empty. ``dest`` is removed
                   first so the next run bootstraps again.
    """
    log.info(f"project: {config.project}")

    for name, value in (
        ("project", config.project),
        ("participant_id", config.participant_id),
    ):
        if not value:
            shutil.rmtree(dest, ignore_errors=True)
            raise HookAbort(f"{name} not specified in config.txt")

    repo = GitRepo(dest)
    try:
        repo.init(settings.branch)
    except RuntimeError as e:
        log.error(f"failed to initialize changelog repository: {e}")

    url = config.remote_url(settings.server)
    try:
        repo.add_remote(settings.remote_name, url)
        log.info(f"added remote {settings.remote_name}: {mask_credentials(url)}")
    except RuntimeError as e:
        log.error(f"failed to add remote {settings.remote_name}: {e}")


def write_version_marker(dest: Path, settings: Settings, log: logging.Logger) -> None:
    """Records the toolchain version string in the changelog directory.

    Args:
        dest (Path): The changelog directory.
        settings (Settings): Supplies the command and the marker file name.
        log (logging.Logger): The run's log sink.
    """
    try:
        res = subprocess.run(
            settings.version_command,
            cwd=dest,
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        log.error(f"failed to query toolchain version: {e}")
        return

    # Some interpreters print their version on stderr.
    version = (res.stdout.strip() or res.stderr.strip()).splitlines()
    try:
        (dest / settings.version_file).write_text(
            (version[0] if version else "") + "\n", encoding="utf-8"
        )
    except OSError as e:
        log.error(f"failed to write {settings.version_file}: {e}")


def commit_and_push(repo: GitRepo, settings: Settings, log: logging.Logger) -> None:
    """Stages, commits and pushes the changelog directory.

    Each step is attempted even when the previous one failed.

    Args:
        repo (GitRepo): The changelog repository.
        settings (Settings): Supplies message, remote and branch.
        log (logging.Logger): The run's log sink.
    """
    log.info("committing to git...")
    try:
        repo.add_all()
    except RuntimeError as e:
        log.error(f"failed to add files to git: {e}")

    try:
        repo.commit(settings.commit_message)
    except RuntimeError as e:
        log.error(f"failed to commit files to git: {e}")

    log.info("pushing...")
    try:
        repo.push(settings.remote_name, settings.branch)
        log.info(f"pushed to {settings.remote_name}/{settings.branch}")
    except RuntimeError as e:
        log.error(f"failed to push: {e}")


def run(
    source_root: Path,
    log: logging.Logger,
    config_path: Path | None = None,
    settings: Settings | None = None,
) -> RunResult:
    """Snapshots ``source_root`` into its changelog repository and pushes it.

    Steps:
    1. Loads the settings and the participant configuration.
    2. Creates and bootstraps the changelog directory on the first run.
    3. Mirrors the source tree and writes the version marker.
    4. Commits and pushes.

    Args:
        source_root (Path): The project directory to snapshot.
        log (logging.Logger): The run's log sink.
        config_path (Path | None): The configuration file. Defaults to
            ``config.txt`` in the current working directory.
        settings (Settings | None): Hook settings. Loaded from
            ``source_root/pyproject.toml`` when omitted.

    Returns:
        RunResult: What the run did.

    Raises:
        HookAbort: If the source root is unreadable or bootstrap fails.
        LogSinkError: If ``log`` has no sink attached.
    """
    log = require_sink(log)
    log.info("opened log...")

    source_root = source_root.resolve()
    if not source_root.is_dir() or not os.access(source_root, os.R_OK | os.X_OK):
        raise HookAbort(f"failed to read source directory: {source_root}")

    if settings is None:
        settings = Settings.load(source_root, log)

    config = load_config(log, config_path)
    if config is None:
        # No configuration: the hook is not enabled for this project.
        return RunResult(skipped=True)

    result = RunResult()
    dest = source_root / settings.changelog_dir

    log.info("creating directory...")
    try:
        dest.mkdir()
        result.bootstrapped = True
    except FileExistsError:
        pass
    except OSError as e:
        raise HookAbort(f"failed to create {dest}: {e}") from e

    if result.bootstrapped:
        bootstrap(dest, config, settings, log)

    log.info("copying files...")
    result.failures = mirror(source_root, dest, settings.excluded_names, log)
    if result.failures:
        log.warning(f"{len(result.failures)} entries could not be copied")

    write_version_marker(dest, settings, log)
    commit_and_push(GitRepo(dest), settings, log)
    return result
