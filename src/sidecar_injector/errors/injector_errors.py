"""
Injector error hierarchy with categorization.

This module defines the error types used throughout the sidecar injector,
providing clear categorization and guidance for resolution.
"""


class InjectorError(Exception):
    """
    Base error class for all injector-related exceptions.

    Provides categorization and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize injector error.

        Args:
            message: Human-readable error description
            category: Error category (deserialization, configuration, certificate, watcher)
            user_action: What user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.user_action = user_action
        self.cause = cause

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class DeserializationError(InjectorError):
    """Malformed admission review or target resource.

    The message is returned to the API server in the response's
    ``result.message``; no user action is attached so the message stays terse.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message=message, category="deserialization", cause=cause)


class ConfigurationError(InjectorError):
    """Unreadable or invalid sidecar configuration file."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        if path:
            message = f"{path}: {message}"
        super().__init__(
            message=message,
            category="configuration",
            user_action=user_action
            or "Check the sidecar configuration file for YAML and schema errors",
            cause=cause,
        )


class CertificateError(InjectorError):
    """Unreadable or mismatched TLS certificate/key pair."""

    def __init__(
        self,
        message: str,
        cert_file: str | None = None,
        key_file: str | None = None,
        cause: Exception | None = None,
    ):
        if cert_file or key_file:
            message = f"{message} (cert: {cert_file}, key: {key_file})"
        super().__init__(
            message=message,
            category="certificate",
            user_action="Verify the certificate and key are PEM encoded and belong together",
            cause=cause,
        )


class WatcherError(InjectorError):
    """Failure inside the filesystem watch subsystem."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message=message, category="watcher", cause=cause)
