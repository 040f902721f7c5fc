"""Core SecretGate engine — compile patterns, scan, filter, decide."""

from __future__ import annotations

import subprocess
from pathlib import Path

from secretgate.allow_filter import filter_allowed
from secretgate.compiler import PatternCompiler, combine, load_allowed
from secretgate.config import SecretGateConfig
from secretgate.errors import RepositoryAbsent
from secretgate.git import Git
from secretgate.matcher import RegexMatcher
from secretgate.models import Action, MatchReport, ScanInput, ScanResult
from secretgate.providers import ProviderRunner
from secretgate.scanner import ScanEngine
from secretgate.store import ConfigStore


class SecretScanner:
    """Runs one scan pass end to end and produces a ScanResult.

    Patterns are re-read from the store and providers are re-run on every
    call, so a single instance reflects configuration changes.
    """

    def __init__(
        self,
        store: ConfigStore,
        config: SecretGateConfig | None = None,
        git: Git | None = None,
        engine: ScanEngine | None = None,
        runner: ProviderRunner | None = None,
    ) -> None:
        self.store = store
        self.config = config or SecretGateConfig()
        self.git = git or Git()
        self.engine = engine or ScanEngine(
            matcher=RegexMatcher(self.config.word_boundary),
            git=self.git,
            skip_binary=self.config.skip_binary,
        )
        self.compiler = PatternCompiler(
            store,
            runner
            or ProviderRunner(
                timeout=self.config.provider_timeout,
                on_error=self.config.provider_on_error,
            ),
        )

    def scan(self, scan_input: ScanInput) -> ScanResult:
        """Scan files, the tracked tree, or a stream."""
        patterns = self.compiler.patterns()
        if not patterns:
            return ScanResult(verdict=Action.PASS.value)
        raw = self.engine.scan(scan_input, combine(patterns))
        return self._decide(raw, len(patterns))

    def scan_history(self) -> ScanResult:
        """Scan every blob in every revision of the repository."""
        patterns = self.compiler.patterns()
        if not patterns:
            return ScanResult(verdict=Action.PASS.value)
        raw = self.engine.scan_history(combine(patterns))
        return self._decide(raw, len(patterns))

    def allowed_patterns(self) -> list[str]:
        return load_allowed(self.store, self._allowed_file())

    def _decide(self, raw: MatchReport, pattern_count: int) -> ScanResult:
        if not raw:
            return ScanResult(verdict=Action.PASS.value, pattern_count=pattern_count)
        remaining = filter_allowed(raw, self.allowed_patterns())
        verdict = Action.BLOCK.value if remaining else Action.PASS.value
        return ScanResult(
            verdict=verdict,
            matches=remaining,
            raw_matches=raw,
            pattern_count=pattern_count,
        )

    def _allowed_file(self) -> Path | None:
        if not self.config.allowed_file:
            return None
        try:
            return self.git.toplevel() / self.config.allowed_file
        except (RepositoryAbsent, subprocess.CalledProcessError):
            return None
