"""JSON scan result reporter for SecretGate."""

from __future__ import annotations

import json

from secretgate.models import ScanResult


class JSONReporter:
    """Serialize a ScanResult to JSON format."""

    def render(self, result: ScanResult) -> str:
        """Render the scan result as a JSON string.

        Args:
            result: The scan result to serialize.

        Returns:
            A formatted JSON string with the verdict and remaining matches.
        """
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
