"""Line matching against a combined pattern."""

from __future__ import annotations

import re
from typing import Protocol

from secretgate.errors import EngineFault
from secretgate.models import Match

# ASCII word characters; content is matched as bytes so no locale applies.
_WORD = "A-Za-z0-9_"


class Matcher(Protocol):
    """Finds the lines of ``content`` that match ``pattern``."""

    def match(self, pattern: str, content: bytes, location: str) -> list[Match]: ...


def wrap_word_boundary(pattern: str, mode: str) -> str:
    """Constrain ``pattern`` so a match cannot start (or end) inside a word.

    ``leading`` only guards the start, ``strict`` guards both ends like
    ``grep -w``, ``none`` leaves the pattern alone.
    """
    if mode == "none":
        return pattern
    wrapped = f"(?<![{_WORD}])(?:{pattern})"
    if mode == "strict":
        wrapped += f"(?![{_WORD}])"
    return wrapped


class RegexMatcher:
    """Matcher built on :mod:`re`, operating on bytes, case-sensitive."""

    def __init__(self, word_boundary: str = "leading") -> None:
        self.word_boundary = word_boundary
        self._cache: dict[str, re.Pattern[bytes]] = {}

    def _compile(self, pattern: str) -> re.Pattern[bytes]:
        compiled = self._cache.get(pattern)
        if compiled is None:
            source = wrap_word_boundary(pattern, self.word_boundary)
            try:
                compiled = re.compile(source.encode("utf-8"))
            except re.error as e:
                raise EngineFault(f"Invalid pattern {pattern!r}: {e}") from e
            self._cache[pattern] = compiled
        return compiled

    def match(self, pattern: str, content: bytes, location: str) -> list[Match]:
        compiled = self._compile(pattern)
        matches: list[Match] = []
        for line_no, line in enumerate(content.splitlines(), start=1):
            if compiled.search(line):
                matches.append(
                    Match(
                        location=location,
                        line=line_no,
                        text=line.decode("utf-8", errors="replace"),
                    )
                )
        return matches
