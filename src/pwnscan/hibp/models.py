"""
Data models for Pwned Passwords results.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from enum import Enum


class RiskLevel(str, Enum):
    """Risk level based on password exposure."""

    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_occurrences(cls, occurrences: int) -> "RiskLevel":
        """Map an occurrence count to a risk level."""
        if occurrences == 0:
            return cls.SAFE
        elif occurrences < 10:
            return cls.LOW
        elif occurrences < 100:
            return cls.MEDIUM
        elif occurrences < 10000:
            return cls.HIGH
        else:
            return cls.CRITICAL


def mask_password(password: str) -> str:
    """Mask all but the first and last character of a password."""
    if len(password) <= 2:
        return "*" * len(password)
    return f"{password[0]}{'*' * (len(password) - 2)}{password[-1]}"


@dataclass
class Finding:
    """A password that appears in the breach corpus."""

    title: str
    password: str
    occurrences: int
    is_master_password: bool = False

    @property
    def risk_level(self) -> RiskLevel:
        """Determine risk level based on occurrences."""
        return RiskLevel.from_occurrences(self.occurrences)

    @property
    def risk_description(self) -> str:
        """Get human-readable risk description."""
        descriptions = {
            RiskLevel.SAFE: "This password has not been found in any known data breaches.",
            RiskLevel.LOW: f"This password has been seen {self.occurrences} times in data breaches. Consider changing it.",
            RiskLevel.MEDIUM: f"This password has been seen {self.occurrences} times. You should change it.",
            RiskLevel.HIGH: f"This password has been seen {self.occurrences:,} times! Change it immediately.",
            RiskLevel.CRITICAL: f"This password has been seen {self.occurrences:,} times! It's extremely common and must be changed.",
        }
        return descriptions[self.risk_level]

    def to_dict(self, include_password: bool = False) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "title": self.title,
            "password": self.password if include_password else mask_password(self.password),
            "occurrences": self.occurrences,
            "is_master_password": self.is_master_password,
            "risk_level": self.risk_level.value,
            "risk_description": self.risk_description,
        }


@dataclass
class SkippedPassword:
    """A password that could not be checked and was skipped."""

    title: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"title": self.title, "error": self.error}


@dataclass
class ScanReport:
    """Summary of a vault scan."""

    vault_path: str
    items_scanned: int = 0
    passwords_checked: int = 0
    findings: list[Finding] = field(default_factory=list)
    skipped: list[SkippedPassword] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None

    @property
    def compromised_count(self) -> int:
        """Number of compromised passwords found."""
        return len(self.findings)

    @property
    def master_password_compromised(self) -> bool:
        """Check if the vault's master password was found in breaches."""
        return any(f.is_master_password for f in self.findings)

    def to_dict(self, include_passwords: bool = False) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "vault_path": self.vault_path,
            "items_scanned": self.items_scanned,
            "passwords_checked": self.passwords_checked,
            "compromised_count": self.compromised_count,
            "master_password_compromised": self.master_password_compromised,
            "findings": [f.to_dict(include_password=include_passwords) for f in self.findings],
            "skipped": [s.to_dict() for s in self.skipped],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
