"""Thin wrapper over the git plumbing commands SecretGate relies on."""

from __future__ import annotations

import subprocess
from pathlib import Path

from secretgate.errors import RepositoryAbsent

# Object id of the empty tree; the diff baseline before the first commit.
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


class Git:
    """Run git commands in a working directory.

    Args:
        cwd: Directory to run git in. Defaults to the process cwd.
    """

    def __init__(self, cwd: str | Path | None = None) -> None:
        self.cwd = str(cwd) if cwd is not None else None

    def run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        """Run ``git ARGS`` and return the completed process with bytes output.

        Raises:
            RepositoryAbsent: If git is not installed, or the command fails
                because no repository could be found.
        """
        try:
            result = subprocess.run(["git", *args], capture_output=True, cwd=self.cwd)
        except FileNotFoundError as e:
            raise RepositoryAbsent("git is not installed or not in PATH") from e

        if check and result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            if "not a git repository" in stderr:
                raise RepositoryAbsent(f"Not in a git repository: {stderr}")
            raise subprocess.CalledProcessError(
                result.returncode, ["git", *args], result.stdout, result.stderr
            )
        return result

    def text(self, *args: str) -> str:
        """Run a git command and return its stdout decoded and stripped."""
        return self.run(*args).stdout.decode("utf-8", errors="replace").strip()

    # --- repository layout ---

    def toplevel(self) -> Path:
        return Path(self.text("rev-parse", "--show-toplevel"))

    def git_dir(self) -> Path:
        path = Path(self.text("rev-parse", "--git-dir"))
        if not path.is_absolute() and self.cwd:
            path = Path(self.cwd) / path
        return path

    def has_commit(self, rev: str = "HEAD") -> bool:
        return self.run("rev-parse", "--verify", "--quiet", rev, check=False).returncode == 0

    # --- file enumeration ---

    def ls_files(self, untracked: bool = False) -> list[str]:
        """List tracked files under the cwd, plus untracked non-ignored ones if asked."""
        paths = _split_z(self.run("ls-files", "-z").stdout)
        if untracked:
            extra = _split_z(self.run("ls-files", "-z", "--others", "--exclude-standard").stdout)
            paths.extend(p for p in extra if p not in paths)
        return paths

    def staged_files(self, base: str) -> list[str]:
        """Files added, copied, modified or unmerged in the index relative to ``base``."""
        out = self.run(
            "diff-index", "--diff-filter=ACMU", "--name-only", "-z", "--cached", base, "--"
        ).stdout
        return _split_z(out)

    # --- object content ---

    def index_blob(self, path: str) -> bytes | None:
        """Return the staged content of ``path``, or None when it has no stage-0 entry.

        ``path`` is relative to the working directory, like ``ls-files`` output.
        """
        result = self.run("cat-file", "blob", f":./{path}", check=False)
        if result.returncode != 0:
            return None
        return result.stdout

    def cat_blob(self, sha: str) -> bytes:
        return self.run("cat-file", "blob", sha).stdout

    def rev_list_all(self) -> list[str]:
        return self.text("rev-list", "--all").splitlines()

    def ls_tree(self, rev: str) -> list[tuple[str, str]]:
        """Return ``(blob sha, path)`` pairs for every blob in ``rev``'s tree."""
        entries: list[tuple[str, str]] = []
        for record in _split_z(self.run("ls-tree", "-r", "-z", rev).stdout):
            meta, _, path = record.partition("\t")
            parts = meta.split()
            if len(parts) == 3 and parts[1] == "blob":
                entries.append((parts[2], path))
        return entries

    # --- merges ---

    def current_branch(self) -> str:
        """Short name of the checked-out branch, or ``HEAD`` when detached."""
        return self.text("rev-parse", "--abbrev-ref", "HEAD")

    def log_patch(self, dest: str, source: str) -> bytes:
        """Log with patches of commits reachable from ``source`` but not ``dest``."""
        return self.run("log", f"{dest}..{source}", "-p").stdout


def _split_z(data: bytes) -> list[str]:
    return [p for p in data.decode("utf-8", errors="surrogateescape").split("\0") if p]
