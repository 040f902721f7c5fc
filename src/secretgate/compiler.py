"""Build the pattern sets used by a single scan."""

from __future__ import annotations

from pathlib import Path

from secretgate.providers import ProviderRunner
from secretgate.store import ALLOWED_KEY, PATTERNS_KEY, PROVIDERS_KEY, ConfigStore, get_merged


class PatternCompiler:
    """Merge static patterns with provider output into one alternation.

    Args:
        store: Where patterns and provider references are read from.
        runner: Executes provider references. Defaults to a plain ProviderRunner.
    """

    def __init__(self, store: ConfigStore, runner: ProviderRunner | None = None) -> None:
        self.store = store
        self.runner = runner or ProviderRunner()

    def patterns(self) -> list[str]:
        """Static patterns first, then provider output, in order."""
        static = get_merged(self.store, PATTERNS_KEY)
        dynamic = self.runner.run(get_merged(self.store, PROVIDERS_KEY))
        return static + dynamic

    def compile(self) -> str | None:
        """Return the combined expression, or None when nothing is configured."""
        return combine(self.patterns())


def combine(patterns: list[str]) -> str | None:
    """Join patterns as alternatives of one expression; None when empty."""
    if not patterns:
        return None
    return "|".join(patterns)


def load_allowed(store: ConfigStore, allowed_file: Path | None = None) -> list[str]:
    """Allowed patterns from git config plus an optional ``.gitallowed`` file.

    Blank lines and lines starting with ``#`` in the file are ignored.
    """
    allowed = get_merged(store, ALLOWED_KEY)
    if allowed_file is not None and allowed_file.is_file():
        for line in allowed_file.read_text(encoding="utf-8", errors="replace").splitlines():
            entry = line.strip()
            if entry and not entry.startswith("#") and entry not in allowed:
                allowed.append(entry)
    return allowed
