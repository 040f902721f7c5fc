"""SecretGate — block commits that introduce secret material into git."""

__version__ = "0.1.0"
