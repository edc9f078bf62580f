"""
Error taxonomy shared by all appi modules.

Every failure the core can report derives from AppiError so the CLI and
the update scan can catch one type and print a descriptive message.
"""

from __future__ import annotations


class AppiError(Exception):
    """
    Base exception for appi errors.

    Attributes:
        message: Human-readable error message
        remediation: Suggested fix for the error
    """
    def __init__(self, message: str, remediation: str | None = None):
        self.message = message
        self.remediation = remediation
        super().__init__(message)


class NetworkError(AppiError):
    """Raised when an HTTP request or transport fails."""
    pass


class NotFoundError(AppiError):
    """Raised when an upstream has no matching package or artifact."""
    pass


class NoResultsError(NotFoundError):
    """Raised when a search returns zero results."""
    pass


class NoCompatibleArtifactError(NotFoundError):
    """Raised when a package exists but ships no AppImage."""
    pass


class QuotaExceededError(AppiError):
    """
    Raised when the GitHub API rate limit is exhausted.

    Attributes:
        minutes_until_reset: Whole minutes until the quota resets
    """
    def __init__(self, minutes_until_reset: int):
        self.minutes_until_reset = minutes_until_reset
        super().__init__(
            f"GitHub rate limit exceeded. Wait for {minutes_until_reset} min and try again",
            remediation="Set GITHUB_TOKEN to raise the rate limit",
        )


class ParseError(AppiError):
    """Raised when a version string or bundle filename is malformed."""
    pass


class FilesystemError(AppiError):
    """Raised when a filesystem operation fails."""
    pass


class IntegrationError(AppiError):
    """Raised when an extracted bundle cannot be integrated into the menu."""
    pass
