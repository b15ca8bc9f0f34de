"""
Custom exception classes for stdin bridging.

This module defines the exception hierarchy used throughout the package
for consistent error handling and reporting.
"""


class StdinBridgeError(Exception):
    """Base exception for stdin-bridge errors."""

    pass


class ConfigError(StdinBridgeError):
    """Configuration error."""

    pass


class UnsupportedEncodingError(StdinBridgeError, LookupError):
    """The decoder does not know the requested encoding."""

    def __init__(self, label: str) -> None:
        super().__init__(f"Unsupported encoding: {label}")
        self.label = label


class StdinUnavailableError(StdinBridgeError):
    """No standard input is attached to the process."""

    pass


class StdinReadError(StdinBridgeError):
    """Draining standard input into the target file failed."""

    pass
