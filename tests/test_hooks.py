"""Tests for git hook dispatch."""

import subprocess
from unittest.mock import MagicMock

import pytest

from secretgate.engine import SecretScanner
from secretgate.errors import EngineFault
from secretgate.git import EMPTY_TREE, Git
from secretgate.hooks import (
    CommitMsgEvent,
    HookDispatcher,
    Outcome,
    PreCommitEvent,
    PrepareCommitMsgEvent,
)
from secretgate.store import LOCAL, PATTERNS_KEY, GitConfigStore

from conftest import requires_git


@pytest.fixture
def dispatcher(store, scanner, fake_git):
    store.add(PATTERNS_KEY, "SECRETKEY", LOCAL)
    return HookDispatcher(scanner, git=fake_git, environ={})


class TestCommitMsg:
    def test_message_with_secret_fails(self, dispatcher, tmp_path):
        msg = tmp_path / "COMMIT_EDITMSG"
        msg.write_text("Add config\n\ntoken=SECRETKEY123\n")
        outcome = dispatcher.handle(CommitMsgEvent(str(msg)))
        assert not outcome.passed
        assert outcome.exit_code == 1
        assert outcome.matches[0].line == 3

    def test_clean_message_passes(self, dispatcher, tmp_path):
        msg = tmp_path / "COMMIT_EDITMSG"
        msg.write_text("Fix typo\n")
        outcome = dispatcher.handle(CommitMsgEvent(str(msg)))
        assert outcome.passed
        assert outcome.exit_code == 0

    def test_missing_message_file_is_a_fault(self, dispatcher, tmp_path):
        with pytest.raises(EngineFault):
            dispatcher.handle(CommitMsgEvent(str(tmp_path / "COMMIT_EDITMSG")))


class TestPreCommit:
    def test_event_against_head(self, dispatcher, fake_git):
        fake_git.has_commit.return_value = True
        fake_git.staged_files.return_value = ["a.py"]
        event = dispatcher.pre_commit_event()
        assert event == PreCommitEvent(files=["a.py"], base="HEAD")
        fake_git.staged_files.assert_called_once_with("HEAD")

    def test_event_before_first_commit_uses_empty_tree(self, dispatcher, fake_git):
        fake_git.has_commit.return_value = False
        fake_git.staged_files.return_value = []
        assert dispatcher.pre_commit_event().base == EMPTY_TREE
        fake_git.staged_files.assert_called_once_with(EMPTY_TREE)

    def test_scans_staged_content(self, dispatcher, fake_git):
        fake_git.index_blob.side_effect = {
            "clean.py": b"x = 1\n",
            "leak.py": b"KEY = 'SECRETKEY'\n",
        }.get
        outcome = dispatcher.handle(PreCommitEvent(files=["clean.py", "leak.py"]))
        assert not outcome.passed
        assert [m.location for m in outcome.matches] == ["leak.py"]

    def test_staged_content_wins_over_working_tree(self, dispatcher, fake_git, tmp_path):
        (tmp_path / "a.py").write_text("SECRETKEY\n")
        fake_git.cwd = str(tmp_path)
        fake_git.index_blob.return_value = b"clean\n"
        assert dispatcher.handle(PreCommitEvent(files=["a.py"])).passed

    def test_falls_back_to_working_tree(self, dispatcher, fake_git, tmp_path):
        (tmp_path / "conflicted.py").write_text("SECRETKEY\n")
        fake_git.cwd = str(tmp_path)
        fake_git.index_blob.return_value = None
        assert not dispatcher.handle(PreCommitEvent(files=["conflicted.py"])).passed

    def test_nothing_staged(self, dispatcher):
        outcome = dispatcher.handle(PreCommitEvent(files=[]))
        assert outcome.passed
        assert outcome.skipped


class TestPrepareCommitMsg:
    def test_ordinary_commit_is_noop(self, dispatcher, fake_git):
        event = dispatcher.prepare_commit_msg_event(".git/COMMIT_EDITMSG", "message")
        outcome = dispatcher.handle(event)
        assert outcome.passed
        assert outcome.skipped
        fake_git.log_patch.assert_not_called()

    def test_amend_is_noop(self, dispatcher, fake_git):
        event = dispatcher.prepare_commit_msg_event(".git/COMMIT_EDITMSG", "merge", "abc123")
        assert not event.is_merge
        assert dispatcher.handle(event).skipped

    def test_merge_scans_incoming_patch(self, store, scanner, fake_git):
        fake_git.current_branch.return_value = "main"
        fake_git.log_patch.return_value = b"commit abc\n+password=SECRETKEY\n"
        dispatcher = HookDispatcher(
            scanner, git=fake_git, environ={"GITHEAD_abc123": "feature", "PATH": "/bin"}
        )
        store.add(PATTERNS_KEY, "SECRETKEY", LOCAL)
        event = dispatcher.prepare_commit_msg_event(".git/MERGE_MSG", "merge")
        assert event.merge_source == "abc123"
        assert event.destination == "main"
        outcome = dispatcher.handle(event)
        assert not outcome.passed
        fake_git.log_patch.assert_called_once_with("main", "abc123")

    def test_clean_merge_passes(self, dispatcher, fake_git):
        fake_git.current_branch.return_value = "main"
        fake_git.log_patch.return_value = b"+harmless\n"
        dispatcher.environ = {"GITHEAD_def456": "topic"}
        event = dispatcher.prepare_commit_msg_event(".git/MERGE_MSG", "merge")
        assert dispatcher.handle(event).passed

    def test_merge_without_githead_is_noop(self, dispatcher, fake_git):
        event = dispatcher.prepare_commit_msg_event(".git/MERGE_MSG", "merge")
        assert event.merge_source is None
        assert event.destination is None
        assert dispatcher.handle(event).skipped
        fake_git.current_branch.assert_not_called()

    def test_event_payload(self):
        event = PrepareCommitMsgEvent(".git/MERGE_MSG", source="merge")
        assert event.is_merge


class TestDispatch:
    def test_unknown_event(self, dispatcher):
        with pytest.raises(TypeError):
            dispatcher.handle("pre-commit")

    def test_outcome_exit_codes(self):
        assert Outcome(passed=True).exit_code == 0
        assert Outcome(passed=False).exit_code == 1


def _git(repo, *args):
    subprocess.run(["git", "-C", str(repo), *args], check=True, capture_output=True)


@requires_git
class TestPreCommitIntegration:
    def test_first_commit_diffed_against_empty_tree(self, git_repo):
        git = Git(git_repo)
        store = GitConfigStore(git)
        store.add(PATTERNS_KEY, "SECRETKEY", LOCAL)
        (git_repo / "config.ini").write_text("[auth]\ntoken=SECRETKEY123\n")
        _git(git_repo, "add", "config.ini")

        dispatcher = HookDispatcher(SecretScanner(store, git=git), environ={})
        event = dispatcher.pre_commit_event()
        assert event.base == EMPTY_TREE
        assert event.files == ["config.ini"]

        outcome = dispatcher.handle(event)
        assert not outcome.passed
        assert outcome.matches[0].location == "config.ini"
        assert outcome.matches[0].line == 2

    def test_deleted_files_not_scanned(self, git_repo):
        git = Git(git_repo)
        store = GitConfigStore(git)
        (git_repo / "old.txt").write_text("SECRETKEY\n")
        _git(git_repo, "add", "old.txt")
        _git(git_repo, "commit", "-q", "--no-verify", "-m", "seed")
        store.add(PATTERNS_KEY, "SECRETKEY", LOCAL)
        _git(git_repo, "rm", "-q", "old.txt")

        dispatcher = HookDispatcher(SecretScanner(store, git=git), environ={})
        event = dispatcher.pre_commit_event()
        assert event.base == "HEAD"
        assert event.files == []
        assert dispatcher.handle(event).passed

    def test_only_staged_version_counts(self, git_repo):
        git = Git(git_repo)
        store = GitConfigStore(git)
        store.add(PATTERNS_KEY, "SECRETKEY", LOCAL)
        target = git_repo / "app.py"
        target.write_text("x = 1\n")
        _git(git_repo, "add", "app.py")
        target.write_text("x = 'SECRETKEY'\n")

        dispatcher = HookDispatcher(SecretScanner(store, git=git), environ={})
        assert dispatcher.handle(dispatcher.pre_commit_event()).passed


def _rev(repo, rev):
    out = subprocess.run(
        ["git", "-C", str(repo), "rev-parse", rev], check=True, capture_output=True, text=True
    )
    return out.stdout.strip()


@requires_git
class TestPrepareCommitMsgIntegration:
    @pytest.fixture
    def detached_repo(self, git_repo):
        """A repo with a ``topic`` branch carrying a secret, HEAD detached at its parent."""
        (git_repo / "README.md").write_text("hello\n")
        _git(git_repo, "add", "README.md")
        _git(git_repo, "commit", "-q", "--no-verify", "-m", "base")
        base = _rev(git_repo, "HEAD")
        _git(git_repo, "checkout", "-q", "-b", "topic")
        (git_repo / "deploy.sh").write_text("export TOKEN=SECRETKEY123\n")
        _git(git_repo, "add", "deploy.sh")
        _git(git_repo, "commit", "-q", "--no-verify", "-m", "topic")
        _git(git_repo, "checkout", "-q", "--detach", base)
        return git_repo

    def test_detached_merge_without_githead_passes(self, detached_repo):
        git = Git(detached_repo)
        store = GitConfigStore(git)
        store.add(PATTERNS_KEY, "SECRETKEY", LOCAL)
        dispatcher = HookDispatcher(SecretScanner(store, git=git), environ={})

        event = dispatcher.prepare_commit_msg_event(".git/MERGE_MSG", "merge")
        outcome = dispatcher.handle(event)
        assert outcome.passed
        assert outcome.skipped

    def test_detached_merge_scans_incoming_commits(self, detached_repo):
        git = Git(detached_repo)
        store = GitConfigStore(git)
        store.add(PATTERNS_KEY, "SECRETKEY", LOCAL)
        topic = _rev(detached_repo, "topic")
        dispatcher = HookDispatcher(
            SecretScanner(store, git=git), environ={f"GITHEAD_{topic}": "topic"}
        )

        event = dispatcher.prepare_commit_msg_event(".git/MERGE_MSG", "merge")
        assert event.destination == "HEAD"
        assert event.merge_source == topic
        outcome = dispatcher.handle(event)
        assert not outcome.passed
        assert "SECRETKEY123" in outcome.matches[0].text
