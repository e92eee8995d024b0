import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME
from .logs import mask_credentials

logger = logging.getLogger(APP_NAME)


class GitRepo:
    """A wrapper around the Git command-line interface for one directory.

    Each method runs a single git command with the directory as working
    directory. Failures surface as ``RuntimeError`` so that callers can decide
    whether to log and continue.

    Attributes:
        path (Path): The directory git commands run in.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Unlike a checkout wrapper, the directory does not have to be a
        repository yet: ``init`` may be the first command run in it.

        Args:
            path (Path): The working directory for git commands.
        """
        self.path = path

    def is_repo(self) -> bool:
        """Returns True if the directory holds a ``.git`` entry."""
        return (self.path / ".git").exists()

    def _run(self, args: list[str], capture: bool = True) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            capture (bool, optional):   Whether to capture and return stdout.
                                        Defaults to True.

        Returns:
            str:    The stripped stdout of the command if capture is True,
                    otherwise an empty string.

        Raises:
            RuntimeError: If git is missing or returns a non-zero exit code.
                          The message has credentials masked.
        """
        try:
            res = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=capture,
                text=True,
                check=True,
            )
            return res.stdout.strip() if capture and res.stdout else ""
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip() or str(e)
            raise RuntimeError(f"Git error: {mask_credentials(detail)}") from e
        except OSError as e:
            raise RuntimeError(f"Git error: {e}") from e

    def init(self, branch: str) -> None:
        """Creates an empty repository whose first branch is ``branch``."""
        self._run(["init", "--initial-branch", branch])

    def add_remote(self, name: str, url: str) -> None:
        """Registers ``url`` as remote ``name``.

        Args:
            name (str): The remote name (e.g., 'origin').
            url (str): The remote URL. May carry credentials.
        """
        self._run(["remote", "add", name, url])

    def remote_url(self, name: str) -> str | None:
        """Returns the URL of remote ``name``, or None if it is not configured."""
        try:
            return self._run(["remote", "get-url", name]) or None
        except RuntimeError as e:
            logger.debug(f"remote get-url failed for '{name}': {e}")
            return None

    def check_ignore(self, path: str) -> bool:
        """Reports whether ``path`` is excluded by the repository's ignore rules.

        Only the exit status is used: 0 means ignored. Any other status,
        including running outside a repository or git being unavailable,
        means not ignored.

        Args:
            path (str): A path relative to the repository directory.

        Returns:
            bool: True if the path is ignored.
        """
        try:
            res = subprocess.run(
                ["git", "check-ignore", "-q", path],
                cwd=self.path,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            logger.debug(f"check-ignore failed for '{path}': {e}")
            return False
        return res.returncode == 0

    def add_all(self) -> None:
        """Stages every file in the working directory."""
        self._run(["add", "."])

    def commit(self, message: str, all_files: bool = True) -> None:
        """Creates a new commit with the provided message.

        Args:
            message (str): The commit message.
            all_files (bool, optional): Whether to also stage modified tracked
                                        files (``-a``). Defaults to True.
        """
        cmd = ["commit"]
        if all_files:
            cmd.append("-a")
        cmd.extend(["-m", message])
        self._run(cmd)

    def push(self, remote: str, branch: str) -> None:
        """Pushes ``branch`` to ``remote`` and sets it as upstream."""
        self._run(["push", "--set-upstream", remote, branch])

    def last_commit(self) -> str | None:
        """Returns a one-line summary of HEAD, or None if there are no commits.

        Returns:
            str | None: e.g. ``'a1b2c3d changelog update (2 hours ago)'``.
        """
        try:
            return self._run(["log", "-1", "--format=%h %s (%cr)"]) or None
        except RuntimeError as e:
            logger.debug(f"git log failed in {self.path}: {e}")
            return None
