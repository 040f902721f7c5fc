"""Data models for SecretGate."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

STDIN_LOCATION = "(standard input)"


class Action(str, Enum):
    """Verdict of a scan."""

    BLOCK = "BLOCK"
    PASS = "PASS"


@dataclass(frozen=True)
class Match:
    """A single line that matched a prohibited pattern."""

    location: str
    line: int
    text: str

    def render(self) -> str:
        """Render as ``location:line:text``, the form allowed patterns see."""
        return f"{self.location}:{self.line}:{self.text}"

    def to_dict(self) -> dict:
        return {"location": self.location, "line": self.line, "text": self.text}


MatchReport = list[Match]


@dataclass
class ScanInput:
    """What to scan.

    ``contents`` holds already-loaded (location, bytes) pairs such as staged
    blobs. With none of ``files``, ``stream`` or ``contents`` set, the tracked
    tree is scanned.
    """

    files: list[str] = field(default_factory=list)
    contents: list[tuple[str, bytes]] = field(default_factory=list)
    stream: bytes | None = None
    stream_label: str = STDIN_LOCATION
    recursive: bool = False
    cached: bool = False
    untracked: bool = False
    no_index: bool = False


@dataclass
class ScanResult:
    """Outcome of compile → scan → allow-filter."""

    verdict: str
    matches: MatchReport = field(default_factory=list)
    raw_matches: MatchReport = field(default_factory=list)
    pattern_count: int = 0

    @property
    def clean(self) -> bool:
        return self.verdict == Action.PASS.value

    def to_dict(self) -> dict:
        return {
            "verdict": self.verdict,
            "pattern_count": self.pattern_count,
            "raw_match_count": len(self.raw_matches),
            "matches": [m.to_dict() for m in self.matches],
        }
