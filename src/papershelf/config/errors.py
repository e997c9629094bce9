"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""


class DuplicateProviderError(ConfigurationError):
    """Raised when two provider entries share the same name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate provider name: {name}")
        self.name = name


class UnknownProviderError(ConfigurationError):
    """Raised when a provider entry names a kind nobody can build."""

    def __init__(self, name: str, kind: str) -> None:
        super().__init__(f"Unknown provider kind {kind!r} for provider {name!r}")
        self.name = name
        self.kind = kind
