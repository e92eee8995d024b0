import sys
import tempfile
from pathlib import Path

"""Global constants and fixed file names for build-changelog.

This module defines the names of the files the hook reads and writes, the
remote server layout, and the default git values used by a run.
"""

# --- Identity ---
APP_NAME = "build-changelog"
"""str: The application name, also used as the logger name."""

TOOL_SECTION = "tool.build-changelog"
"""str: The pyproject.toml table holding hook settings."""

# --- Files ---
CONFIG_FILE_NAME = "config.txt"
"""str: The participant configuration file, read from the working directory."""

CHANGELOG_DIR_NAME = "changelog"
"""str: The shadow directory (inside the source root) that holds the snapshots."""

LOG_FILE: Path = Path(tempfile.gettempdir()) / "log.txt"
"""Path: The log file, recreated on every run."""

VERSION_FILE_NAME = "python.version"
"""str: The marker file recording the toolchain version of each snapshot."""

VERSION_COMMAND = [sys.executable, "--version"]
"""list[str]: The command whose output is written to the version marker."""

EXCLUDED_NAMES = (".git", CHANGELOG_DIR_NAME)
"""tuple[str, ...]: Entry names that are never mirrored."""

# --- Remote ---
SERVER = "git.goto.ucsd.edu"
"""str: The git server hosting the participant repositories."""

REMOTE_URL_TEMPLATE = (
    "https://{participant_id}:{password}@{server}/{participant_id}/{project}.git"
)
"""str: Template of the credential-bearing remote URL."""

REMOTE_NAME = "origin"
"""str: The remote the snapshots are pushed to."""

DEFAULT_BRANCH = "main"
"""str: The branch the snapshots are committed to and pushed."""

COMMIT_MESSAGE = "changelog update"
"""str: The message used for every snapshot commit."""
