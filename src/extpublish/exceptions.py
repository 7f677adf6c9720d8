"""
Custom exceptions for extpublish.

Every failure in a publish run is reported through one of these exceptions.
Nothing is recovered automatically: the CLI logs the error and exits with a
non-zero status.
"""


class ExtPublishError(Exception):
    """
    Base exception for all extpublish errors.

    All custom exceptions should inherit from this class so the CLI can catch
    every application-specific failure in one place.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ExtPublishError):
    """
    Exception raised when a required argument or credential is missing or invalid.

    Always raised before any network call is made.
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


# =============================================================================
# Network Errors
# =============================================================================


class NetworkError(ExtPublishError):
    """
    Exception raised when a request could not be completed at the transport level.

    Attributes:
        url: The URL that was being requested.
    """

    def __init__(
        self, message: str, url: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.url = url


class HTTPError(NetworkError):
    """
    Exception raised when a server answers with an unexpected status code.

    Attributes:
        status_code: The HTTP status code returned by the server.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, url, details)
        self.status_code = status_code


# =============================================================================
# Release / Package Errors
# =============================================================================


class ReleaseError(ExtPublishError):
    """Exception raised when a release or one of its assets cannot be used."""

    pass


class PackageError(ExtPublishError):
    """
    Exception raised when an extension package cannot be inspected or patched.

    Attributes:
        package_path: Path to the problematic package.
    """

    def __init__(
        self,
        message: str,
        package_path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.package_path = package_path


class IntegrityMismatchError(ExtPublishError):
    """Exception raised when the package name disagrees with the store listing."""

    def __init__(self, manifest_name: str, listing_name: str) -> None:
        super().__init__(
            "Extension name mismatch between manifest and store listing",
            details=f'"{manifest_name}" != "{listing_name}"',
        )
        self.manifest_name = manifest_name
        self.listing_name = listing_name


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(ExtPublishError):
    """
    Base exception for failures reported by an extension store.

    Attributes:
        store: Human readable store name.
    """

    def __init__(self, message: str, store: str, details: str | None = None) -> None:
        super().__init__(message, details)
        self.store = store


class StoreRejectedError(StoreError):
    """Exception raised when a store rejects a submission; keeps the raw status."""

    def __init__(self, store: str, status: str | None) -> None:
        super().__init__(f"{store} rejected the submission", store, details=status)
        self.status = status


class PollTimeoutError(StoreError):
    """Exception raised when a store is still processing after the attempt budget."""

    def __init__(self, store: str, attempts: int, waited_seconds: int) -> None:
        super().__init__(
            f"{store} timed out",
            store,
            details=f"still pending after {attempts} checks ({waited_seconds}s)",
        )
        self.attempts = attempts
        self.waited_seconds = waited_seconds


class StatusCheckError(StoreError):
    """Exception raised when a store status check call itself fails."""

    def __init__(
        self, store: str, reason: str | None, status_code: int | None = None
    ) -> None:
        super().__init__(f"{store} status check failed", store, details=reason)
        self.status_code = status_code


# =============================================================================
# Operator Errors
# =============================================================================


class ConfirmationDeclinedError(ExtPublishError):
    """Exception raised when the operator does not confirm an irreversible action."""

    def __init__(self) -> None:
        super().__init__("Aborted")


class PublishDisabledError(ExtPublishError):
    """Exception raised when publishing to a store is disabled by configuration."""

    pass


# =============================================================================
# Auto-update Errors
# =============================================================================


class AutoUpdateError(ExtPublishError):
    """Exception raised when the auto-update descriptor cannot be brought up to date."""

    pass
