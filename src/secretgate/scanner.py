"""ScanEngine — apply a compiled pattern to files, trees, streams or history."""

from __future__ import annotations

import os
from pathlib import Path

from secretgate.errors import EngineFault
from secretgate.git import Git
from secretgate.matcher import Matcher, RegexMatcher
from secretgate.models import Match, MatchReport, ScanInput

_BINARY_SAMPLE = 8192


def _is_binary(content: bytes) -> bool:
    return b"\x00" in content[:_BINARY_SAMPLE]


def _read(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except OSError:
        return None


def _read_named(path: Path) -> bytes:
    """Read a file the caller named explicitly; failing to read it is a fault."""
    try:
        return path.read_bytes()
    except OSError as e:
        raise EngineFault(f"{path}: {e.strerror or e}") from e


class ScanEngine:
    """Produce a MatchReport for a ScanInput.

    Args:
        matcher: Line matcher. Defaults to a RegexMatcher.
        git: Git wrapper used for tree and index content.
        skip_binary: Skip content that looks binary.
    """

    def __init__(
        self,
        matcher: Matcher | None = None,
        git: Git | None = None,
        skip_binary: bool = True,
    ) -> None:
        self.matcher = matcher or RegexMatcher()
        self.git = git or Git()
        self.skip_binary = skip_binary

    def scan(self, scan_input: ScanInput, pattern: str | None) -> MatchReport:
        """Scan ``scan_input`` with ``pattern``; None means no patterns (always clean)."""
        if pattern is None:
            return []
        if scan_input.stream is not None:
            return self.scan_bytes(scan_input.stream, scan_input.stream_label, pattern)
        if scan_input.contents:
            report: MatchReport = []
            for location, content in scan_input.contents:
                report.extend(self.scan_bytes(content, location, pattern))
            return report
        if scan_input.files and not (
            scan_input.cached or scan_input.untracked or scan_input.no_index
        ):
            return self._scan_paths(scan_input.files, scan_input.recursive, pattern)
        return self._scan_tree(scan_input, pattern)

    def scan_bytes(self, content: bytes, location: str, pattern: str) -> MatchReport:
        if self.skip_binary and _is_binary(content):
            return []
        return self.matcher.match(pattern, content, location)

    def scan_history(self, pattern: str | None) -> MatchReport:
        """Scan every blob reachable from any ref, each distinct blob once."""
        if pattern is None:
            return []
        report: MatchReport = []
        seen: set[str] = set()
        for rev in self.git.rev_list_all():
            for sha, path in self.git.ls_tree(rev):
                if sha in seen:
                    continue
                seen.add(sha)
                report.extend(self.scan_bytes(self.git.cat_blob(sha), f"{rev}:{path}", pattern))
        return report

    def _scan_paths(self, paths: list[str], recursive: bool, pattern: str) -> MatchReport:
        report: MatchReport = []
        for name in paths:
            path = Path(name)
            if path.is_dir():
                if recursive:
                    report.extend(self._scan_directory(path, pattern))
                continue
            report.extend(self.scan_bytes(_read_named(path), name, pattern))
        return report

    def _scan_directory(self, root: Path, pattern: str) -> MatchReport:
        report: MatchReport = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d != ".git")
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                content = _read(path)
                if content is not None:
                    report.extend(self.scan_bytes(content, str(path), pattern))
        return report

    def _scan_tree(self, scan_input: ScanInput, pattern: str) -> MatchReport:
        if scan_input.no_index:
            roots = scan_input.files or ["."]
            report: MatchReport = []
            for root in roots:
                path = Path(root)
                if path.is_dir():
                    report.extend(self._scan_directory(path, pattern))
                else:
                    report.extend(self._scan_paths([root], False, pattern))
            return _relative(report)

        paths = self.git.ls_files(untracked=scan_input.untracked)
        if scan_input.files:
            paths = [p for p in paths if _under_any(p, scan_input.files)]

        report = []
        for name in paths:
            content = self.git.index_blob(name) if scan_input.cached else None
            if content is None:
                content = _read(Path(self.git.cwd or ".") / name)
            if content is not None:
                report.extend(self.scan_bytes(content, name, pattern))
        return report


def _under_any(path: str, prefixes: list[str]) -> bool:
    for prefix in prefixes:
        prefix = os.path.normpath(prefix)
        if prefix == "." or path == prefix or path.startswith(prefix.rstrip("/") + "/"):
            return True
    return False


def _relative(report: MatchReport) -> MatchReport:
    """Drop a leading ``./`` from walked locations."""
    return [
        Match(location=m.location.removeprefix("./"), line=m.line, text=m.text) for m in report
    ]
