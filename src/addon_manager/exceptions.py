"""Addon manager exceptions.

Every failure the pipeline reports maps to one of these types, so the
orchestrator can turn them into per-addon outcomes instead of aborting the run.
"""


class AddonError(Exception):
    """Base exception for addon operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (addon name, paths, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class FetchError(AddonError):
    """Retrieving or decoding an addon archive failed."""


class PackageNotFoundError(FetchError):
    """The remote index has no downloadable archive for the addon."""


class PlanError(AddonError):
    """A change plan could not be built for a fetched addon."""


class CommitError(AddonError):
    """A single filesystem change failed to apply."""


class ConfigError(AddonError):
    """Configuration could not be used."""


class ConfigNotFoundError(ConfigError):
    """Configuration file does not exist."""


class ConfigFormatError(ConfigError):
    """Configuration file is not valid YAML or violates the schema."""
