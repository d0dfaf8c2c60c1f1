"""
Error taxonomy for storage and compilation.

Transient failures are retried inside the component that owns them;
only the final, exhausted failure crosses a component boundary.
"""

from typing import Optional


class ClaissError(Exception):
    """Base class for application errors."""
    pass


class StorageError(ClaissError):
    """Raised when a storage provider call fails."""
    pass


class ConfigurationError(StorageError):
    """Raised when a provider is missing credentials or a bucket. Never retried."""
    pass


class TransientProviderError(StorageError):
    """Raised for network-level provider failures that are worth retrying."""
    pass


class FallbackExhaustedError(ClaissError):
    """
    Raised when every tier of a fallback chain has failed.

    Carries both underlying failures so the message can name them.
    """

    def __init__(
        self,
        message: str,
        primary_error: BaseException,
        secondary_error: BaseException,
        primary_label: str = "primary",
        secondary_label: str = "secondary",
    ) -> None:
        self.primary_error = primary_error
        self.secondary_error = secondary_error
        super().__init__(
            f"{message} ({primary_label}: {primary_error}, {secondary_label}: {secondary_error})"
        )


class ValidationError(ClaissError):
    """Raised when a merge request's scenes are unusable."""

    def __init__(self, issues: list[str]) -> None:
        self.issues = list(issues)
        super().__init__("Scene validation failed: " + "; ".join(self.issues))


class CompilationError(ClaissError):
    """A render failed. Tagged with the compute tier that produced it."""

    def __init__(
        self,
        message: str,
        tier: str,
        logs: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> None:
        self.tier = tier
        self.logs = logs
        self.duration = duration
        super().__init__(message)


class RemoteComputeError(ClaissError):
    """Raised when the remote compute service cannot be reached or answers badly."""
    pass


class AuthenticationError(ClaissError):
    """Raised when an /api request carries a missing or wrong bearer token."""
    pass
