"""grep-style text reporter and the remediation banner shown on violations."""

from __future__ import annotations

from secretgate.models import ScanResult

REMEDIATION = """\

[ERROR] Matched one or more prohibited patterns

Possible mitigations:
- Mark false positives as allowed using: secretgate add --allowed ...
- Mark false positives as allowed by adding regular expressions to .gitallowed at the repository's root directory
- List your configured patterns: git config --get-all secrets.patterns
- List your configured allowed patterns: git config --get-all secrets.allowed
- List your configured providers: git config --get-all secrets.providers
- Use --no-verify if this is a one-time false positive
"""


class TextReporter:
    """Render matches one per line as ``location:line:text``."""

    def render(self, result: ScanResult) -> str:
        return "\n".join(m.render() for m in result.matches)

    def render_failure(self, result: ScanResult) -> str:
        """Matches followed by the remediation banner."""
        return self.render(result) + "\n" + REMEDIATION
