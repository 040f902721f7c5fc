"""Suppress matches that an allowed pattern covers."""

from __future__ import annotations

import re

from secretgate.errors import EngineFault
from secretgate.models import MatchReport


def filter_allowed(report: MatchReport, allowed: list[str]) -> MatchReport:
    """Drop every match whose rendered line matches an allowed pattern.

    Allowed patterns see ``location:line:text``, so they can target a file as
    well as content. The result is always a subsequence of ``report``; with no
    allowed patterns it is ``report`` itself.
    """
    if not allowed or not report:
        return report

    try:
        combined = re.compile("|".join(f"(?:{a})" for a in allowed), re.ASCII)
    except re.error as e:
        raise EngineFault(f"Invalid allowed pattern: {e}") from e

    return [m for m in report if not combined.search(m.render())]
