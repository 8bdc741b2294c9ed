"""
Runtime configuration for breach checks.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import os
from dataclasses import dataclass
from typing import Any

from pwnscan import __version__

DEFAULT_API_URL = "https://api.pwnedpasswords.com"
DEFAULT_TIMEOUT = 30.0
MASTER_PASSWORD_ENV = "PWNSCAN_MASTER_PASSWORD"


@dataclass
class ScanConfig:
    """Configuration for the Pwned Passwords client and vault scans."""

    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = f"pwnscan/{__version__}"

    # Ask the service to pad responses so their size leaks nothing
    add_padding: bool = False

    # Read from the environment, never written anywhere
    master_password: str | None = None

    @classmethod
    def from_env(cls) -> "ScanConfig":
        """Load configuration from environment variables."""
        timeout_str = os.environ.get("PWNSCAN_TIMEOUT")
        try:
            timeout = float(timeout_str) if timeout_str else DEFAULT_TIMEOUT
        except ValueError:
            timeout = DEFAULT_TIMEOUT

        return cls(
            api_url=os.environ.get("PWNSCAN_API_URL", DEFAULT_API_URL),
            timeout=timeout,
            user_agent=os.environ.get("PWNSCAN_USER_AGENT", f"pwnscan/{__version__}"),
            add_padding=os.environ.get("PWNSCAN_ADD_PADDING", "").lower() in ("true", "yes", "1"),
            master_password=os.environ.get(MASTER_PASSWORD_ENV) or None,
        )

    def validate(self) -> list[str]:
        """Validate configuration. Returns list of errors."""
        errors = []

        if not self.api_url.startswith(("http://", "https://")):
            errors.append(f"API URL must be http(s): {self.api_url}")
        if self.timeout <= 0:
            errors.append("Timeout must be positive")
        if not self.user_agent:
            errors.append("User-Agent must not be empty")

        return errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (excludes sensitive values)."""
        return {
            "api_url": self.api_url,
            "timeout": self.timeout,
            "user_agent": self.user_agent,
            "add_padding": self.add_padding,
            "master_password_set": self.master_password is not None,
        }
