"""
Vault scanning for compromised passwords.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Callable

from pwnscan.exceptions import ProtocolError, TransportError, VaultError
from pwnscan.hibp.client import BreachChecker
from pwnscan.hibp.models import Finding, ScanReport, SkippedPassword
from pwnscan.vault.base import FieldType, ItemType, Vault, VaultItem

logger = logging.getLogger(__name__)

MASTER_PASSWORD_TITLE = "master password"

# Return True to stop scanning
ItemCallback = Callable[[VaultItem, list[str]], bool | None]


class ErrorPolicy(str, Enum):
    """What to do when a single password cannot be checked."""
    ABORT = "abort"
    SKIP = "skip"


def extract_passwords(item: VaultItem) -> list[str]:
    """Extract the non-empty passwords stored in an item.

    PASSWORD items contribute their primary password and every URL-scoped
    variant; all other items contribute their password-typed form fields.

    Raises:
        VaultError: If the item cannot be decrypted
    """
    if item.type_name == ItemType.PASSWORD.value:
        record = item.password_record()
        candidates = [record.password] + [u.password for u in record.urls]
    else:
        content = item.content()
        candidates = [f.value for f in content.fields if f.type == FieldType.PASSWORD.value]

    return [p for p in candidates if p]


class CredentialScanner:
    """Checks every password in a vault against the breach corpus."""

    def __init__(self, checker: BreachChecker | None = None):
        self.checker = checker or BreachChecker()

    def scan(self, vault: Vault, on_item: ItemCallback) -> None:
        """Call on_item with the passwords of every item not in the trash.

        Scanning stops as soon as on_item returns a truthy value.

        Raises:
            VaultError: If the items cannot be listed or an item cannot be
                decrypted. No later items are examined.
        """
        try:
            items = vault.list_items()
        except (VaultError, OSError) as e:
            raise VaultError(f"failed to list items: {e}") from e

        for item in items:
            if item.trashed:
                continue

            try:
                passwords = extract_passwords(item)
            except (VaultError, OSError) as e:
                raise VaultError(f"failed to decrypt item {item.title!r}: {e}") from e

            if on_item(item, passwords):
                logger.debug(f"Scan stopped at {item.title!r}")
                return

    def run(
        self,
        vault: Vault,
        master_password: str | None = None,
        on_error: ErrorPolicy | str = ErrorPolicy.ABORT,
        progress: Callable[[VaultItem], None] | None = None,
        on_finding: Callable[[Finding], None] | None = None,
    ) -> ScanReport:
        """Scan a vault and collect every compromised password.

        Args:
            vault: Unlocked vault to scan
            master_password: Vault master password, checked first if given
            on_error: ABORT re-raises transport and protocol errors, SKIP
                records them in the report and moves on
            progress: Called with each item before its passwords are checked
            on_finding: Called with each finding as soon as it is made

        Returns:
            ScanReport with findings and counters
        """
        policy = ErrorPolicy(on_error)
        report = ScanReport(vault_path=vault.path)

        def check(title: str, password: str, is_master: bool = False) -> None:
            try:
                occurrences = self.checker.check_occurrences(password)
            except (TransportError, ProtocolError) as e:
                if policy is ErrorPolicy.ABORT:
                    raise
                logger.warning(f"Skipping a password of {title!r}: {e}")
                report.skipped.append(SkippedPassword(title=title, error=str(e)))
                return

            report.passwords_checked += 1

            if occurrences > 0:
                finding = Finding(
                    title=title,
                    password=password,
                    occurrences=occurrences,
                    is_master_password=is_master,
                )
                report.findings.append(finding)
                if on_finding:
                    on_finding(finding)

        if master_password:
            check(MASTER_PASSWORD_TITLE, master_password, is_master=True)

        def handle_item(item: VaultItem, passwords: list[str]) -> bool:
            report.items_scanned += 1
            if progress:
                progress(item)
            for password in passwords:
                check(item.title, password)
            return False

        self.scan(vault, handle_item)

        report.finished_at = datetime.now()
        logger.debug(f"Scan finished: {self.checker.stats()}")
        return report
