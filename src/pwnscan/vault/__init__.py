"""
Password vault access and scanning.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from pwnscan.vault.base import (
    FieldType,
    FormField,
    ItemContent,
    ItemType,
    PasswordRecord,
    UrlPassword,
    Vault,
    VaultItem,
)
from pwnscan.vault.keychain import KeychainVault, check_vault
from pwnscan.vault.scanner import CredentialScanner, ErrorPolicy, extract_passwords

__all__ = [
    "FieldType",
    "FormField",
    "ItemContent",
    "ItemType",
    "PasswordRecord",
    "UrlPassword",
    "Vault",
    "VaultItem",
    "KeychainVault",
    "check_vault",
    "CredentialScanner",
    "ErrorPolicy",
    "extract_passwords",
]
