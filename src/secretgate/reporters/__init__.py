"""Scan result reporters for SecretGate."""

from secretgate.reporters.json_reporter import JSONReporter
from secretgate.reporters.text_reporter import TextReporter

__all__ = ["JSONReporter", "TextReporter"]
