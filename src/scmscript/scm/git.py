# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Git source control backed by the git executable.

Checkout fetches one revision into a directory and force-checks it out.
The virtual view reads blobs straight from a local repository with
`git cat-file`, so no working tree is materialized. Remote repositories
have no virtual view.
"""

import logging
import posixpath
import re
import subprocess
from pathlib import Path
from typing import List, Optional

from scmscript.errors import CheckoutAbortError, CheckoutCancelledError, UnreadableFileError
from scmscript.paths import decode_script
from scmscript.schemas import RunContext, SourceReference

logger = logging.getLogger(__name__)

# How often a running git process checks for cancellation
POLL_INTERVAL_S = 0.5

# user@host:org/repo.git
SCP_URL_PATTERN = re.compile(r"^[\w.-]+@[\w.-]+:")


def _local_repository(url: str) -> Optional[Path]:
    """Return the filesystem path for a local repository URL, if it is one."""
    if url.startswith("file://"):
        return Path(url[len("file://"):])
    if "://" in url or SCP_URL_PATTERN.match(url):
        return None
    path = Path(url).expanduser()
    return path if path.is_dir() else None


class GitVirtualView:
    """Read-only view of one commit in a local repository."""

    def __init__(self, repository: Path, commit: str, git_binary: str = "git"):
        self.repository = repository
        self.commit = commit
        self.git_binary = git_binary
        self.closed = False

    def read_file(self, path: str) -> str:
        """Return the text of path at this commit.

        Raises:
            FileNotFoundError: If path is not a file in the commit.
            UnreadableFileError: If git cannot run or the blob is not UTF-8.
            ValueError: If the view has been closed.
        """
        if self.closed:
            raise ValueError("virtual view is closed")
        normalized = posixpath.normpath(path.replace("\\", "/")).lstrip("/")
        try:
            result = subprocess.run(
                [self.git_binary, "cat-file", "blob", f"{self.commit}:{normalized}"],
                cwd=self.repository,
                capture_output=True,
            )
        except OSError as e:
            raise UnreadableFileError(f"cannot read {path} from {self.repository}: {e}") from e
        if result.returncode != 0:
            raise FileNotFoundError(path)
        return decode_script(result.stdout, f"{self.commit}:{normalized}")

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "GitVirtualView":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class GitSourceControl:
    """SourceControl implementation for git references."""

    def __init__(self, reference: SourceReference, git_binary: str = "git"):
        self.reference = reference
        self.git_binary = git_binary

    def _git(self, args: List[str], cwd: Path, run_context: RunContext) -> str:
        """Run a git command, honoring the run's cancel event.

        Raises:
            CheckoutAbortError: If git cannot be started or exits non-zero.
            CheckoutCancelledError: If the run is cancelled while git runs.
        """
        command = [self.git_binary, *args]
        logger.debug(f"Executing: {' '.join(command)}")
        try:
            proc = subprocess.Popen(
                command,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise CheckoutAbortError(f"cannot run {self.git_binary}: {e}") from e
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=POLL_INTERVAL_S)
                break
            except subprocess.TimeoutExpired:
                if run_context.cancelled:
                    proc.kill()
                    proc.communicate()
                    raise CheckoutCancelledError(f"git {args[0]} interrupted")

        if proc.returncode != 0:
            message = stderr.strip() or f"git {args[0]} exited with code {proc.returncode}"
            raise CheckoutAbortError(message)
        return stdout

    def checkout(self, run_context: RunContext, target: Path) -> None:
        """Fetch the configured revision into target and check it out."""
        target.mkdir(parents=True, exist_ok=True)
        if not (target / ".git").exists():
            self._git(["init", "--quiet"], target, run_context)

        local = _local_repository(self.reference.url)
        fetch_url = str(local.resolve()) if local is not None else self.reference.url

        run_context.logger.info(f"Fetching {self.reference.revision} from {self.reference.url}")
        self._git(
            ["fetch", "--force", "--quiet", fetch_url, self.reference.revision],
            target,
            run_context,
        )
        self._git(["checkout", "--force", "--quiet", "FETCH_HEAD"], target, run_context)
        self._git(["clean", "-fdx", "--quiet"], target, run_context)

    def open_virtual_view(self, run_context: RunContext) -> Optional[GitVirtualView]:
        """Open a view of the revision if the repository is local.

        Returns None for remote repositories, when git cannot run, or when
        the revision cannot be resolved locally.
        """
        repository = _local_repository(self.reference.url)
        if repository is None or not repository.is_dir():
            return None

        try:
            result = subprocess.run(
                [self.git_binary, "rev-parse", "--verify", "--quiet", f"{self.reference.revision}^{{commit}}"],
                cwd=repository,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            logger.debug(f"Cannot run {self.git_binary}: {e}")
            return None
        if result.returncode != 0:
            logger.debug(f"Cannot resolve {self.reference.revision} in {repository}")
            return None
        return GitVirtualView(repository, result.stdout.strip(), self.git_binary)
