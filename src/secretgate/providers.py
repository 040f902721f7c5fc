"""Pattern providers: commands that emit extra prohibited patterns at scan time."""

from __future__ import annotations

import subprocess
import sys
from typing import Protocol

from secretgate.errors import ProviderError


class PatternProvider(Protocol):
    """Anything that can produce prohibited patterns on demand."""

    def patterns(self) -> list[str]: ...


class CommandProvider:
    """A provider backed by a shell command; each stdout line is a pattern."""

    def __init__(self, command: str, timeout: float | None = None, strict: bool = False) -> None:
        self.command = command
        self.timeout = timeout
        self.strict = strict

    def patterns(self) -> list[str]:
        try:
            result = subprocess.run(
                self.command,
                shell=True,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return self._failed(f"timed out after {self.timeout}s", status=124)

        if result.returncode != 0:
            return self._failed(
                f"exited with status {result.returncode}: {result.stderr.strip()}",
                status=result.returncode,
            )
        return [line.rstrip() for line in result.stdout.splitlines() if line.strip()]

    def _failed(self, reason: str, status: int) -> list[str]:
        if self.strict:
            raise ProviderError(f"Provider '{self.command}' {reason}", status=status)
        print(f"⚠️  Ignoring provider '{self.command}': {reason}", file=sys.stderr)
        return []


class ProviderRunner:
    """Run every registered provider reference and collect its patterns.

    Args:
        timeout: Seconds before a provider is abandoned. None waits forever.
        on_error: ``ignore`` drops a failing provider's output; ``fail``
            raises ProviderError.
    """

    def __init__(self, timeout: float | None = None, on_error: str = "ignore") -> None:
        self.timeout = timeout
        self.on_error = on_error

    def provider_for(self, reference: str) -> PatternProvider:
        return CommandProvider(reference, timeout=self.timeout, strict=self.on_error == "fail")

    def run(self, references: list[str]) -> list[str]:
        patterns: list[str] = []
        for reference in references:
            patterns.extend(self.provider_for(reference).patterns())
        return patterns
