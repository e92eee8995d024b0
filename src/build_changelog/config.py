import logging
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from .constants import (
    CHANGELOG_DIR_NAME,
    COMMIT_MESSAGE,
    CONFIG_FILE_NAME,
    DEFAULT_BRANCH,
    REMOTE_NAME,
    REMOTE_URL_TEMPLATE,
    SERVER,
    TOOL_SECTION,
    VERSION_COMMAND,
    VERSION_FILE_NAME,
)
from .logs import require_sink

REQUIRED_KEYS = ("participant_id", "git_password", "project")


@dataclass(frozen=True)
class Config:
    """Participant configuration read from ``config.txt``.

    Attributes:
        participant_id (str): The account name on the remote server.
        git_password (str): The account password. Kept out of ``repr``.
        project (str): The remote repository name.
    """

    participant_id: str
    git_password: str = field(repr=False)
    project: str

    def remote_url(self, server: str = SERVER) -> str:
        """Builds the credential-bearing HTTPS URL of the participant's repository.

        The password ends up in the URL handed to git, so this is the only
        place that reads it.

        Args:
            server (str): The git server host.

        Returns:
            str: The remote URL.
        """
        return REMOTE_URL_TEMPLATE.format(
            participant_id=self.participant_id,
            password=self.git_password,
            server=server,
            project=self.project,
        )


def parse_config(log: logging.Logger, text: str) -> Config | None:
    """Parses ``key: value`` pairs separated by commas.

    There is no quoting or escaping, so values cannot contain ``,`` or ``:``.
    Unknown keys are ignored and a repeated key keeps its last value.

    Args:
        log (logging.Logger): The run's log sink.
        text (str): The configuration text.

    Returns:
        Config | None: The parsed configuration, or None if a segment is
        malformed or a required key is missing.
    """
    log = require_sink(log)
    values: dict[str, str] = {}

    for index, segment in enumerate(text.split(",")):
        parts = segment.split(":")
        if len(parts) != 2:
            log.error(
                f"failed to parse {CONFIG_FILE_NAME}: "
                f"entry {index + 1} is not a 'key: value' pair"
            )
            return None

        key, value = parts[0].strip(), parts[1].strip()
        if key in REQUIRED_KEYS:
            values[key] = value

    for key in REQUIRED_KEYS:
        if key not in values:
            log.error(f"failed to parse {CONFIG_FILE_NAME}: missing {key}")
            return None

    return Config(**values)


def load_config(log: logging.Logger, path: Path | None = None) -> Config | None:
    """Reads and parses the participant configuration file.

    A missing file means the hook is not set up for this project; the caller
    then skips the whole run.

    Args:
        log (logging.Logger): The run's log sink.
        path (Path | None): The file to read. Defaults to ``config.txt`` in the
            current working directory.

    Returns:
        Config | None: The configuration, or None if it is absent or invalid.
    """
    log = require_sink(log)
    path = path or Path.cwd() / CONFIG_FILE_NAME
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        log.info(f"failed to open {path}: not found, skipping run")
        return None
    except (OSError, UnicodeDecodeError) as e:
        log.error(f"failed to read {path}: {e}")
        return None

    return parse_config(log, text)


@dataclass
class Settings:
    """Hook settings, optionally overridden in ``[tool.build-changelog]``.

    Attributes:
        server (str): The git server host used in the remote URL.
        remote_name (str): The remote the snapshots are pushed to.
        branch (str): The branch created on init and pushed.
        commit_message (str): The message of every snapshot commit.
        changelog_dir (str): The shadow directory name inside the source root.
        exclude (list[str]): Extra entry names never mirrored.
        version_file (str): The version marker file name.
        version_command (list[str]): The command producing the version string.
    """

    server: str = SERVER
    remote_name: str = REMOTE_NAME
    branch: str = DEFAULT_BRANCH
    commit_message: str = COMMIT_MESSAGE
    changelog_dir: str = CHANGELOG_DIR_NAME
    exclude: list[str] = field(default_factory=list)
    version_file: str = VERSION_FILE_NAME
    version_command: list[str] = field(default_factory=lambda: list(VERSION_COMMAND))

    @property
    def excluded_names(self) -> tuple[str, ...]:
        """Entry names skipped by the mirror: ``.git``, the changelog dir, extras."""
        return tuple(dict.fromkeys([".git", self.changelog_dir, *self.exclude]))

    @classmethod
    def load(cls, project_root: Path, log: logging.Logger) -> "Settings":
        """Loads settings from the project's ``pyproject.toml``.

        Args:
            project_root (Path): The directory holding ``pyproject.toml``.
            log (logging.Logger): The run's log sink.

        Returns:
            Settings: Defaults merged with the tool table, if any.
        """
        log = require_sink(log)
        instance = cls()
        pyproject = project_root / "pyproject.toml"
        if not pyproject.exists():
            return instance

        try:
            with open(pyproject, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            log.error(f"Config syntax error in {pyproject}: {e}")
            return instance
        except OSError as e:
            log.warning(f"Failed to load settings from {pyproject}: {e}")
            return instance

        for key in TOOL_SECTION.split("."):
            data = data.get(key, {})
            if not isinstance(data, dict):
                log.warning(f"[{TOOL_SECTION}] is not a table. Ignoring.")
                return instance

        if not data:
            return instance
        return instance._update(log, data)

    def _update(self, log: logging.Logger, updates: dict[str, Any]) -> "Settings":
        """Returns a copy with valid ``updates`` applied, warning on the rest."""
        defaults = {f.name: getattr(self, f.name) for f in fields(self)}

        invalid_keys = sorted(set(updates) - set(defaults))
        if invalid_keys:
            log.warning(
                f"Unknown config keys in [{TOOL_SECTION}]: "
                f"{', '.join(invalid_keys)}. Ignoring."
            )

        filtered_updates = {}
        for k, v in updates.items():
            if k not in defaults:
                continue
            default = defaults[k]
            if isinstance(default, list):
                if not (isinstance(v, list) and all(isinstance(i, str) for i in v)):
                    log.warning(
                        f"Config error in [{TOOL_SECTION}].{k}: expected a list "
                        "of strings. Falling back to default."
                    )
                    continue
                if k == "version_command" and not v:
                    log.warning(
                        f"Config error in [{TOOL_SECTION}].{k}: empty command. "
                        "Falling back to default."
                    )
                    continue
            elif not isinstance(v, str) or not v.strip():
                log.warning(
                    f"Config error in [{TOOL_SECTION}].{k}: expected a non-empty "
                    "string. Falling back to default."
                )
                continue
            filtered_updates[k] = v

        return replace(self, **filtered_updates)
