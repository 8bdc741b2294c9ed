"""
Pwned Passwords integration module.

Provides password breach-frequency checks using the k-anonymity range API,
with a per-session cache of every fetched hash prefix.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from pwnscan.hibp.models import (
    Finding,
    RiskLevel,
    ScanReport,
    SkippedPassword,
)
from pwnscan.hibp.client import BreachChecker

__all__ = [
    "BreachChecker",
    "Finding",
    "RiskLevel",
    "ScanReport",
    "SkippedPassword",
]
