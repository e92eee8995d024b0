"""build-changelog: record every build of a project in a shadow git history.

This package provides the build-time hook that mirrors a project's source tree
into its ``changelog`` directory, commits the snapshot and pushes it to the
participant's repository on the course git server.
"""

from . import (
    cli,
    config,
    constants,
    git_wrapper,
    hook,
    logs,
    mirror,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "git_wrapper",
    "hook",
    "logs",
    "mirror",
]
