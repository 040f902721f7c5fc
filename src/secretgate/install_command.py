"""SecretGate install command — write git hook scripts that call back into SecretGate."""

from __future__ import annotations

import stat
import sys
from pathlib import Path

from secretgate.errors import InstallConflict, RepositoryAbsent
from secretgate.git import Git

# git hook name -> SecretGate hook subcommand
HOOKS = {
    "commit-msg": "commit-msg-hook",
    "pre-commit": "pre-commit-hook",
    "prepare-commit-msg": "prepare-commit-msg-hook",
}

_HOOK_FILENAME = "secretgate"


def _build_hook_script(subcommand: str, python: str | None = None) -> str:
    python = python or sys.executable
    return f"""\
#!{python}
\"\"\"Git hook installed by SecretGate; forwards all arguments to `secretgate {subcommand}`.\"\"\"

import subprocess
import sys

sys.exit(subprocess.run([{python!r}, "-m", "secretgate", {subcommand!r}, *sys.argv[1:]]).returncode)
"""


def resolve_hooks_dir(target: str | Path | None) -> Path:
    """Find the directory hooks are written to.

    A repository working tree (containing ``.git``) maps to ``.git/hooks``; no
    target means the current repository; anything else is treated as a git
    template directory and gets a ``hooks`` subdirectory.
    """
    if target is None:
        return Git().git_dir() / "hooks"
    root = Path(target)
    if (root / ".git").is_dir():
        return root / ".git" / "hooks"
    if not root.is_dir():
        raise RepositoryAbsent(f"{root} is not a directory")
    return root / "hooks"


def hook_destination(hooks_dir: Path, hook: str) -> Path:
    """``hooks/<hook>.d/secretgate`` when a hook directory exists, else ``hooks/<hook>``."""
    multi = hooks_dir / f"{hook}.d"
    if multi.is_dir():
        return multi / _HOOK_FILENAME
    return hooks_dir / hook


def install_hooks(hooks_dir: Path, force: bool = False) -> list[tuple[str, Path]]:
    """Write all three hook scripts into ``hooks_dir``.

    Raises:
        InstallConflict: If a destination exists and ``force`` is False.
            Nothing is written in that case.
    """
    hooks_dir.mkdir(parents=True, exist_ok=True)
    destinations = {hook: hook_destination(hooks_dir, hook) for hook in HOOKS}

    if not force:
        for dest in destinations.values():
            if dest.exists():
                raise InstallConflict(f"{dest} already exists. Use --force to overwrite")

    written: list[tuple[str, Path]] = []
    for hook, dest in destinations.items():
        dest.write_text(_build_hook_script(HOOKS[hook]), encoding="utf-8")
        dest.chmod(dest.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        written.append((hook, dest))
    return written


def install_command(args: object) -> int:
    """Execute the install command.

    Args:
        args: Parsed CLI arguments with optional ``target`` and ``force``.

    Returns:
        0 on success.
    """
    hooks_dir = resolve_hooks_dir(getattr(args, "target", None))
    for hook, dest in install_hooks(hooks_dir, force=getattr(args, "force", False)):
        print(f"✓ Installed {hook} hook to {dest}", file=sys.stderr)
    return 0
