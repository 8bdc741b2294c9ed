"""
pwnscan - check password vaults against the Pwned Passwords corpus.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

__version__ = "1.0.0"
