"""
Error handling module for the sidecar injector.

This module provides the error hierarchy used to separate per-request
failures (reported to the API server) from reload failures (logged while
the last good state keeps serving).
"""

from .injector_errors import (
    CertificateError,
    ConfigurationError,
    DeserializationError,
    InjectorError,
    WatcherError,
)

__all__ = [
    "InjectorError",
    "DeserializationError",
    "ConfigurationError",
    "CertificateError",
    "WatcherError",
]
