"""Pattern persistence backed by git config.

Three multi-valued keys hold everything SecretGate persists:
``secrets.patterns``, ``secrets.allowed`` and ``secrets.providers``. Each key
exists in a ``global`` and a ``local`` scope which are queried independently.
"""

from __future__ import annotations

import re
import subprocess
from typing import Protocol

from secretgate.errors import RepositoryAbsent
from secretgate.git import Git

PATTERNS_KEY = "secrets.patterns"
ALLOWED_KEY = "secrets.allowed"
PROVIDERS_KEY = "secrets.providers"
ALL_KEYS = (PATTERNS_KEY, ALLOWED_KEY, PROVIDERS_KEY)

GLOBAL = "global"
LOCAL = "local"
SCOPES = (GLOBAL, LOCAL)

_LITERAL_META = re.compile(r"[\\.|$(){}?+*^\[\]]")


def escape_literal(value: str) -> str:
    """Escape regex metacharacters so ``value`` only ever matches itself."""
    return _LITERAL_META.sub(lambda m: "\\" + m.group(0), value)


class ConfigStore(Protocol):
    """Ordered, de-duplicated multi-valued key/value store."""

    def get_all(self, key: str, scope: str) -> list[str]: ...

    def add(self, key: str, value: str, scope: str) -> bool: ...


def get_merged(store: ConfigStore, key: str) -> list[str]:
    """Global values followed by local values, without duplicates."""
    merged: list[str] = []
    for scope in SCOPES:
        for value in store.get_all(key, scope):
            if value not in merged:
                merged.append(value)
    return merged


class MemoryConfigStore:
    """In-memory ConfigStore."""

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], list[str]] = {}

    def get_all(self, key: str, scope: str) -> list[str]:
        _check_scope(scope)
        return list(self._data.get((scope, key), []))

    def add(self, key: str, value: str, scope: str) -> bool:
        _check_scope(scope)
        values = self._data.setdefault((scope, key), [])
        if value in values:
            return False
        values.append(value)
        return True


class GitConfigStore:
    """ConfigStore using ``git config --get-all`` / ``git config --add``."""

    def __init__(self, git: Git | None = None) -> None:
        self.git = git or Git()

    def get_all(self, key: str, scope: str) -> list[str]:
        _check_scope(scope)
        result = self.git.run("config", f"--{scope}", "--get-all", key, check=False)
        # git config exits 1 when the key is simply unset
        if result.returncode == 1:
            return []
        if result.returncode != 0:
            raise _scope_error(scope, result)
        return [
            line for line in result.stdout.decode("utf-8", errors="replace").splitlines() if line
        ]

    def add(self, key: str, value: str, scope: str) -> bool:
        if value in self.get_all(key, scope):
            return False
        result = self.git.run("config", f"--{scope}", "--add", key, value, check=False)
        if result.returncode != 0:
            raise _scope_error(scope, result)
        return True


def _check_scope(scope: str) -> None:
    if scope not in SCOPES:
        raise ValueError(f"Unknown config scope: {scope!r}")


def _scope_error(scope: str, result: subprocess.CompletedProcess) -> Exception:
    stderr = result.stderr.decode("utf-8", errors="replace").strip()
    if scope == LOCAL:
        return RepositoryAbsent(f"Cannot use local git config: {stderr or 'not in a git repository'}")
    return subprocess.CalledProcessError(result.returncode, result.args, result.stdout, result.stderr)
