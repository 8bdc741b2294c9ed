"""
Encrypted on-disk keychain vault.

A keychain is a directory holding ``vault.json`` (salt and KDF settings)
and one JSON file per item under ``items/``. Item metadata is stored in the
clear; item content is sealed with Fernet using a key derived from the
master password.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import os
import json
import base64
import hashlib
import logging
import secrets
from datetime import datetime
from pathlib import Path
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from pwnscan.exceptions import VaultError
from pwnscan.vault.base import (
    ItemContent,
    ItemType,
    PasswordRecord,
    Vault,
    VaultItem,
)

logger = logging.getLogger(__name__)

VAULT_VERSION = 1
KDF_ITERATIONS = 480000  # OWASP recommended minimum
META_FILE = "vault.json"
ITEMS_DIR = "items"

_VERIFIER = b"pwnscan-keychain"


def check_vault(vault_path: str | Path) -> None:
    """Check that a path holds a keychain vault.

    Raises:
        VaultError: If the layout or metadata is invalid
    """
    path = Path(vault_path)

    if not path.is_dir():
        raise VaultError(f"{path} is not a directory")

    meta_path = path / META_FILE
    if not meta_path.is_file():
        raise VaultError(f"{META_FILE} not found in {path}")

    if not (path / ITEMS_DIR).is_dir():
        raise VaultError(f"{ITEMS_DIR}/ directory not found in {path}")

    try:
        meta = json.loads(meta_path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise VaultError(f"unreadable {META_FILE}: {e}") from e

    for key in ("salt", "iterations", "verifier", "version"):
        if key not in meta:
            raise VaultError(f"{META_FILE} is missing '{key}'")

    if meta["version"] != VAULT_VERSION:
        raise VaultError(f"unsupported vault version: {meta['version']}")

    try:
        base64.b64decode(meta["salt"], validate=True)
    except (ValueError, TypeError) as e:
        raise VaultError(f"{META_FILE} has an invalid salt: {e}") from e

    iterations = meta["iterations"]
    if not isinstance(iterations, int) or isinstance(iterations, bool) or iterations <= 0:
        raise VaultError(f"{META_FILE} has an invalid iteration count: {iterations!r}")

    if not isinstance(meta["verifier"], str):
        raise VaultError(f"{META_FILE} has an invalid verifier")


class KeychainItem(VaultItem):
    """An item stored in a KeychainVault."""

    def __init__(self, vault: "KeychainVault", data: dict[str, Any]):
        self._vault = vault
        self._sealed = data.get("content", "")

        self.id = data["id"]
        self.title = data.get("title", "")
        self.type_name = data.get("type", ItemType.GENERIC.value)
        self.trashed = bool(data.get("trashed", False))
        self.created_at = datetime.fromisoformat(data["created_at"]) if data.get("created_at") else None
        self.updated_at = datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else None

    def __repr__(self) -> str:
        return f"KeychainItem(id={self.id!r}, title={self.title!r}, type_name={self.type_name!r})"

    def _decrypted(self) -> dict[str, Any]:
        return self._vault._decrypt_json(self._sealed, self.title)

    def password_record(self) -> PasswordRecord:
        data = self._decrypted()
        try:
            return PasswordRecord.from_dict(data)
        except (AttributeError, TypeError) as e:
            raise VaultError(f"item {self.title!r} has a malformed password record: {e}") from e

    def content(self) -> ItemContent:
        data = self._decrypted()
        try:
            return ItemContent.from_dict(data)
        except (AttributeError, TypeError) as e:
            raise VaultError(f"item {self.title!r} has malformed fields: {e}") from e


class KeychainVault(Vault):
    """Encrypted password vault stored in a directory."""

    def __init__(self, vault_path: str | Path):
        """Initialize a handle on a keychain directory.

        Use open() or create() rather than calling this directly.

        Args:
            vault_path: Path to the vault directory
        """
        self.vault_path = Path(vault_path)
        self.meta_path = self.vault_path / META_FILE
        self.items_path = self.vault_path / ITEMS_DIR

        self._meta: dict[str, Any] = {}
        self._fernet: Fernet | None = None

    @classmethod
    def open(cls, vault_path: str | Path) -> "KeychainVault":
        """Open an existing vault (still locked)."""
        check_vault(vault_path)

        vault = cls(vault_path)
        vault._meta = json.loads(vault.meta_path.read_text())
        return vault

    @classmethod
    def create(
        cls,
        vault_path: str | Path,
        master_password: str,
        iterations: int = KDF_ITERATIONS,
    ) -> "KeychainVault":
        """Create a new, unlocked vault.

        Args:
            vault_path: Directory to create the vault in
            master_password: Master password for encryption
            iterations: PBKDF2 iteration count

        Returns:
            The unlocked vault
        """
        if not master_password:
            raise VaultError("Master password required to create a vault")

        vault = cls(vault_path)
        if vault.meta_path.exists():
            raise VaultError(f"Vault already exists at {vault.vault_path}")

        vault.items_path.mkdir(parents=True, exist_ok=True)

        salt = secrets.token_bytes(32)
        fernet = cls._derive_key(master_password, salt, iterations)

        vault._meta = {
            "salt": base64.b64encode(salt).decode(),
            "iterations": iterations,
            "verifier": fernet.encrypt(_VERIFIER).decode(),
            "created_at": datetime.now().isoformat(),
            "version": VAULT_VERSION,
        }
        vault.meta_path.write_text(json.dumps(vault._meta, indent=2))
        os.chmod(vault.meta_path, 0o600)

        vault._fernet = fernet
        logger.debug(f"Created vault at {vault.vault_path}")
        return vault

    @staticmethod
    def _derive_key(master_password: str, salt: bytes, iterations: int) -> Fernet:
        """Derive encryption key from master password."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=iterations,
        )
        key = base64.urlsafe_b64encode(kdf.derive(master_password.encode()))
        return Fernet(key)

    @property
    def path(self) -> str:
        return str(self.vault_path)

    @property
    def is_unlocked(self) -> bool:
        return self._fernet is not None

    def unlock(self, master_password: str) -> None:
        """Unlock the vault.

        Raises:
            VaultError: If the master password is wrong
        """
        salt = base64.b64decode(self._meta["salt"])
        fernet = self._derive_key(master_password, salt, int(self._meta["iterations"]))

        try:
            verifier = fernet.decrypt(self._meta["verifier"].encode())
        except InvalidToken:
            raise VaultError("incorrect master password") from None

        if verifier != _VERIFIER:
            raise VaultError("incorrect master password")

        self._fernet = fernet
        logger.debug(f"Unlocked vault at {self.vault_path}")

    def lock(self) -> None:
        """Forget the derived key."""
        self._fernet = None

    def _require_unlocked(self) -> Fernet:
        if not self._fernet:
            raise VaultError("Vault is locked")
        return self._fernet

    def _encrypt_json(self, data: dict[str, Any]) -> str:
        """Encrypt a JSON-serializable dict."""
        return self._require_unlocked().encrypt(json.dumps(data).encode()).decode()

    def _decrypt_json(self, sealed: str, title: str) -> dict[str, Any]:
        """Decrypt item content sealed by _encrypt_json."""
        fernet = self._require_unlocked()

        try:
            plain = fernet.decrypt(sealed.encode())
        except InvalidToken:
            raise VaultError(f"cannot decrypt item {title!r}") from None

        try:
            data = json.loads(plain)
        except json.JSONDecodeError as e:
            raise VaultError(f"item {title!r} content is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise VaultError(f"item {title!r} content is not an object")
        return data

    def _generate_id(self, title: str) -> str:
        """Generate unique item ID."""
        raw = f"{title}:{secrets.token_hex(8)}"
        return hashlib.sha256(raw.encode()).hexdigest()[:16]

    def add_item(
        self,
        title: str,
        type_name: str | ItemType,
        content: PasswordRecord | ItemContent,
        trashed: bool = False,
    ) -> str:
        """Add an item to the vault.

        Args:
            title: Item title
            type_name: Item type; PASSWORD items take a PasswordRecord,
                every other type an ItemContent
            content: Item content to encrypt
            trashed: Whether the item is in the trash

        Returns:
            Item ID
        """
        type_name = ItemType(type_name).value

        if type_name == ItemType.PASSWORD.value and not isinstance(content, PasswordRecord):
            raise VaultError("password items require a PasswordRecord")
        if type_name != ItemType.PASSWORD.value and not isinstance(content, ItemContent):
            raise VaultError(f"{type_name} items require an ItemContent")

        now = datetime.now().isoformat()
        item_id = self._generate_id(title)

        data = {
            "id": item_id,
            "title": title,
            "type": type_name,
            "trashed": trashed,
            "created_at": now,
            "updated_at": now,
            "content": self._encrypt_json(content.to_dict()),
        }

        item_file = self.items_path / f"{item_id}.json"
        item_file.write_text(json.dumps(data, indent=2))
        os.chmod(item_file, 0o600)

        return item_id

    def trash_item(self, item_id: str) -> bool:
        """Move an item to the trash.

        Returns:
            True if trashed, False if not found
        """
        item_file = self.items_path / f"{item_id}.json"
        if not item_file.exists():
            return False

        data = json.loads(item_file.read_text())
        data["trashed"] = True
        data["updated_at"] = datetime.now().isoformat()
        item_file.write_text(json.dumps(data, indent=2))
        return True

    def list_items(self) -> list[KeychainItem]:
        """List every item in the vault, sorted by title.

        Raises:
            VaultError: If the vault is locked or an item file is unreadable
        """
        self._require_unlocked()

        items = []
        for item_file in sorted(self.items_path.glob("*.json")):
            try:
                data = json.loads(item_file.read_text())
                items.append(KeychainItem(self, data))
            except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
                raise VaultError(f"unreadable item file {item_file.name}: {e}") from e

        items.sort(key=lambda i: i.title.lower())
        return items
