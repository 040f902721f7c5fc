"""Shared test fixtures for SecretGate tests."""

import shutil
import subprocess
from unittest.mock import MagicMock

import pytest

from secretgate.config import SecretGateConfig
from secretgate.engine import SecretScanner
from secretgate.errors import RepositoryAbsent
from secretgate.git import Git
from secretgate.store import MemoryConfigStore

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


@pytest.fixture
def store():
    """An empty in-memory pattern store."""
    return MemoryConfigStore()


@pytest.fixture
def fake_git():
    """A Git double that is not inside any repository."""
    git = MagicMock(spec=Git)
    git.cwd = None
    git.toplevel.side_effect = RepositoryAbsent("not a git repository")
    return git


@pytest.fixture
def scanner(store, fake_git):
    return SecretScanner(store, SecretGateConfig(), git=fake_git)


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME (and git's global config) at an empty temp directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GIT_CONFIG_GLOBAL", raising=False)
    monkeypatch.delenv("GIT_DIR", raising=False)
    monkeypatch.delenv("GIT_INDEX_FILE", raising=False)
    return home


@pytest.fixture
def git_repo(tmp_path, isolated_home):
    """A freshly initialised git repository with no commits."""
    repo = tmp_path / "repo"
    repo.mkdir()
    subprocess.run(["git", "init", "-q", str(repo)], check=True)
    subprocess.run(["git", "-C", str(repo), "config", "user.name", "Test"], check=True)
    subprocess.run(["git", "-C", str(repo), "config", "user.email", "test@example.com"], check=True)
    return repo
