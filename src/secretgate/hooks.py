"""Git hook dispatch.

Each git lifecycle event SecretGate hooks into is modelled as its own event
type carrying the payload it needs. ``HookDispatcher.handle`` decides what
content the event submits for scanning and turns a violation into a failing
Outcome, which the CLI maps to a non-zero exit so git aborts the operation.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from secretgate.engine import SecretScanner
from secretgate.git import EMPTY_TREE, Git
from secretgate.models import MatchReport, ScanInput, ScanResult

_GITHEAD_PREFIX = "GITHEAD_"


@dataclass
class CommitMsgEvent:
    """``commit-msg``: the proposed message, already written to a file."""

    message_path: str


@dataclass
class PreCommitEvent:
    """``pre-commit``: files staged relative to ``base``."""

    files: list[str] = field(default_factory=list)
    base: str = "HEAD"


@dataclass
class PrepareCommitMsgEvent:
    """``prepare-commit-msg``: only merges are scanned.

    ``merge_source`` and ``destination`` are resolved only for merges.
    """

    message_path: str
    source: str | None = None
    sha: str | None = None
    merge_source: str | None = None
    destination: str | None = None

    @property
    def is_merge(self) -> bool:
        return self.source == "merge" and not self.sha


HookEvent = Union[CommitMsgEvent, PreCommitEvent, PrepareCommitMsgEvent]


@dataclass
class Outcome:
    """Result of handling one hook event."""

    passed: bool
    result: ScanResult | None = None
    skipped: bool = False

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    @property
    def matches(self) -> MatchReport:
        return self.result.matches if self.result else []


class HookDispatcher:
    """Resolve hook events and scan the content each one introduces."""

    def __init__(
        self,
        scanner: SecretScanner,
        git: Git | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.scanner = scanner
        self.git = git or scanner.git
        self.environ = environ if environ is not None else os.environ

    # --- event construction ---

    def pre_commit_event(self) -> PreCommitEvent:
        """Staged files against HEAD, or against the empty tree before the first commit."""
        base = "HEAD" if self.git.has_commit("HEAD") else EMPTY_TREE
        return PreCommitEvent(files=self.git.staged_files(base), base=base)

    def prepare_commit_msg_event(
        self, message_path: str, source: str | None = None, sha: str | None = None
    ) -> PrepareCommitMsgEvent:
        event = PrepareCommitMsgEvent(message_path=message_path, source=source, sha=sha)
        if event.is_merge:
            event.merge_source = self._merge_head()
            if event.merge_source:
                event.destination = self.git.current_branch()
        return event

    def _merge_head(self) -> str | None:
        """The commit being merged, from git's ``GITHEAD_<sha>`` variable."""
        for name in sorted(self.environ):
            if name.startswith(_GITHEAD_PREFIX) and len(name) > len(_GITHEAD_PREFIX):
                return name[len(_GITHEAD_PREFIX):]
        return None

    # --- dispatch ---

    def handle(self, event: HookEvent) -> Outcome:
        if isinstance(event, CommitMsgEvent):
            return self._handle_commit_msg(event)
        if isinstance(event, PreCommitEvent):
            return self._handle_pre_commit(event)
        if isinstance(event, PrepareCommitMsgEvent):
            return self._handle_prepare_commit_msg(event)
        raise TypeError(f"Unknown hook event: {event!r}")

    def _handle_commit_msg(self, event: CommitMsgEvent) -> Outcome:
        result = self.scanner.scan(ScanInput(files=[event.message_path]))
        return _outcome(result)

    def _handle_pre_commit(self, event: PreCommitEvent) -> Outcome:
        if not event.files:
            return Outcome(passed=True, skipped=True)
        # Staged content, not the working tree, is what the commit will contain.
        contents: list[tuple[str, bytes]] = []
        for path in event.files:
            content = self.git.index_blob(path)
            if content is None:
                candidate = Path(self.git.cwd or ".") / path
                if not candidate.is_file():
                    continue
                content = candidate.read_bytes()
            contents.append((path, content))
        if not contents:
            return Outcome(passed=True, skipped=True)
        return _outcome(self.scanner.scan(ScanInput(contents=contents)))

    def _handle_prepare_commit_msg(self, event: PrepareCommitMsgEvent) -> Outcome:
        if not event.is_merge or not event.merge_source or not event.destination:
            return Outcome(passed=True, skipped=True)
        patch = self.git.log_patch(event.destination, event.merge_source)
        return _outcome(self.scanner.scan(ScanInput(stream=patch)))


def _outcome(result: ScanResult) -> Outcome:
    return Outcome(passed=result.clean, result=result)
