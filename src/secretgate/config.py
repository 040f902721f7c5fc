"""Runtime settings for SecretGate.

Patterns, allowed patterns and providers live in git config (see
``secretgate.store``). This module covers the knobs around them, read from
``.secretgate.yml``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # type: ignore

_DEFAULT_CONFIG = {
    "providers": {
        "on_error": "ignore",
        "timeout": None,
    },
    "scan": {
        "word_boundary": "leading",
        "skip_binary": True,
    },
    "allowed_file": ".gitallowed",
}

PROVIDER_ERROR_MODES = ("ignore", "fail")
WORD_BOUNDARY_MODES = ("leading", "strict", "none")


@dataclass
class SecretGateConfig:
    """Full SecretGate configuration loaded from `.secretgate.yml`."""

    provider_on_error: str = "ignore"
    provider_timeout: float | None = None
    word_boundary: str = "leading"
    skip_binary: bool = True
    allowed_file: str = ".gitallowed"

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> SecretGateConfig:
        """Load configuration from a YAML file, falling back to defaults.

        Search order:
        1. Explicit ``config_path`` argument
        2. ``.secretgate.yml`` in the current directory
        3. Built-in defaults
        """
        raw: dict[str, Any] = dict(_DEFAULT_CONFIG)

        search_paths: list[Path] = []
        if config_path:
            search_paths.append(Path(config_path))
        search_paths.append(Path(".secretgate.yml"))

        for path in search_paths:
            if path.exists():
                with open(path, encoding="utf-8") as f:
                    loaded = yaml.safe_load(f)
                if loaded and isinstance(loaded, dict):
                    raw = _deep_merge(raw, loaded)
                break

        return cls._from_raw(raw)

    @classmethod
    def _from_raw(cls, raw: dict[str, Any]) -> SecretGateConfig:
        """Build config from a raw dict (merged defaults + user overrides)."""
        cfg = cls()

        providers = raw.get("providers") or {}
        cfg.provider_on_error = providers.get("on_error", cfg.provider_on_error)
        cfg.provider_timeout = providers.get("timeout", cfg.provider_timeout)

        scan = raw.get("scan") or {}
        cfg.word_boundary = scan.get("word_boundary", cfg.word_boundary)
        cfg.skip_binary = scan.get("skip_binary", cfg.skip_binary)

        cfg.allowed_file = raw.get("allowed_file", cfg.allowed_file)

        if cfg.provider_on_error not in PROVIDER_ERROR_MODES:
            raise ValueError(
                f"providers.on_error must be one of {PROVIDER_ERROR_MODES}, "
                f"got {cfg.provider_on_error!r}"
            )
        if cfg.word_boundary not in WORD_BOUNDARY_MODES:
            raise ValueError(
                f"scan.word_boundary must be one of {WORD_BOUNDARY_MODES}, "
                f"got {cfg.word_boundary!r}"
            )
        return cfg


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep-merge override dict into base dict."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
