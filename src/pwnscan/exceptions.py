"""
Exception types raised by pwnscan.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""


class PwnscanError(Exception):
    """Base class for all pwnscan errors."""


class TransportError(PwnscanError):
    """Raised when the Pwned Passwords service cannot be reached."""

    def __init__(self, url: str, reason: str, status: int | None = None):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(reason)

    def __str__(self):
        msg = f"request to {self.url} failed: {self.reason}"
        if self.status is not None:
            msg += f" (HTTP {self.status})"
        return msg


class ProtocolError(PwnscanError):
    """Raised when a range response cannot be parsed."""

    def __init__(self, prefix: str, reason: str, line_number: int | None = None):
        self.prefix = prefix
        self.reason = reason
        self.line_number = line_number
        super().__init__(reason)

    def __str__(self):
        msg = f"malformed range response for {self.prefix}: {self.reason}"
        if self.line_number is not None:
            msg += f" (line {self.line_number})"
        return msg


class VaultError(PwnscanError):
    """Raised when a vault cannot be opened, unlocked, listed or decrypted."""


class UserInputError(PwnscanError):
    """Raised for missing or invalid command-line input."""
