"""Exceptions raised by SecretGate."""

from __future__ import annotations


class SecretGateError(Exception):
    """Base class for SecretGate failures.

    ``status`` is the process exit code the CLI uses when the error escapes.
    """

    status: int = 1

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        if status is not None:
            self.status = status


class EngineFault(SecretGateError):
    """The matching engine could not run (e.g. a malformed expression)."""

    status = 2


class ProviderError(EngineFault):
    """A pattern provider failed while ``providers.on_error`` is ``fail``."""


class InstallConflict(SecretGateError):
    """A hook destination already exists and overwriting was not requested."""


class RepositoryAbsent(SecretGateError):
    """The operation needs a git repository (or git itself) and none was found."""
