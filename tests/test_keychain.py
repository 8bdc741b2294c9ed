"""Tests for the encrypted keychain vault."""

import json

import pytest

from pwnscan.exceptions import VaultError
from pwnscan.vault.base import (
    FieldType,
    FormField,
    ItemContent,
    ItemType,
    PasswordRecord,
    UrlPassword,
)
from pwnscan.vault.keychain import KeychainVault, check_vault
from pwnscan.vault.scanner import extract_passwords

# Keep key derivation fast in tests
ITERATIONS = 1000


@pytest.fixture
def vault(tmp_path):
    return KeychainVault.create(tmp_path / "vault", "master", iterations=ITERATIONS)


def login_content(password: str) -> ItemContent:
    return ItemContent(fields=[
        FormField(name="username", type=FieldType.TEXT.value, value="me"),
        FormField(name="password", type=FieldType.PASSWORD.value, value=password),
    ])


class TestCheckVault:
    """Layout validation."""

    def test_valid_vault(self, vault):
        check_vault(vault.path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(VaultError, match="not a directory"):
            check_vault(tmp_path / "nope")

    def test_missing_metadata(self, tmp_path):
        (tmp_path / "items").mkdir()

        with pytest.raises(VaultError, match="vault.json"):
            check_vault(tmp_path)

    def test_corrupt_metadata(self, vault):
        vault.meta_path.write_text("{not json")

        with pytest.raises(VaultError, match="unreadable"):
            check_vault(vault.path)

    def test_unsupported_version(self, vault):
        meta = json.loads(vault.meta_path.read_text())
        meta["version"] = 99
        vault.meta_path.write_text(json.dumps(meta))

        with pytest.raises(VaultError, match="version"):
            KeychainVault.open(vault.path)

    @pytest.mark.parametrize("key, value, message", [
        ("salt", "!!not base64!!", "invalid salt"),
        ("salt", 12, "invalid salt"),
        ("iterations", "many", "invalid iteration count"),
        ("iterations", 0, "invalid iteration count"),
        ("iterations", True, "invalid iteration count"),
        ("verifier", 7, "invalid verifier"),
    ])
    def test_invalid_metadata_value(self, vault, key, value, message):
        """Bad KDF settings are rejected on open, before unlock ever runs."""
        meta = json.loads(vault.meta_path.read_text())
        meta[key] = value
        vault.meta_path.write_text(json.dumps(meta))

        with pytest.raises(VaultError, match=message):
            KeychainVault.open(vault.path)


class TestUnlock:
    """Master password handling."""

    def test_reopen_and_unlock(self, vault):
        vault.add_item("Mail", ItemType.LOGIN, login_content("hunter2"))

        reopened = KeychainVault.open(vault.path)
        assert not reopened.is_unlocked
        reopened.unlock("master")

        items = reopened.list_items()
        assert [i.title for i in items] == ["Mail"]
        assert extract_passwords(items[0]) == ["hunter2"]

    def test_wrong_password(self, vault):
        reopened = KeychainVault.open(vault.path)

        with pytest.raises(VaultError, match="incorrect master password"):
            reopened.unlock("not-the-master")

    def test_locked_vault_cannot_list(self, vault):
        vault.lock()

        with pytest.raises(VaultError, match="locked"):
            vault.list_items()

    def test_create_requires_password(self, tmp_path):
        with pytest.raises(VaultError):
            KeychainVault.create(tmp_path / "v", "", iterations=ITERATIONS)

    def test_create_refuses_existing(self, vault):
        with pytest.raises(VaultError, match="already exists"):
            KeychainVault.create(vault.path, "master", iterations=ITERATIONS)


class TestItems:
    """Adding, listing and decrypting items."""

    def test_password_item(self, vault):
        record = PasswordRecord(
            password="",
            urls=[UrlPassword(url="https://a.example", password="scoped")],
        )
        vault.add_item("Router", ItemType.PASSWORD, record)

        (item,) = vault.list_items()
        assert item.type_name == "password"
        assert item.password_record() == record
        assert extract_passwords(item) == ["scoped"]

    def test_content_is_encrypted_on_disk(self, vault):
        item_id = vault.add_item("Mail", ItemType.LOGIN, login_content("plaintext-secret"))

        raw = (vault.items_path / f"{item_id}.json").read_text()
        assert "plaintext-secret" not in raw
        assert json.loads(raw)["title"] == "Mail"

    def test_items_sorted_by_title(self, vault):
        for title in ("zeta", "Alpha", "mid"):
            vault.add_item(title, ItemType.LOGIN, login_content("x"))

        assert [i.title for i in vault.list_items()] == ["Alpha", "mid", "zeta"]

    def test_trash_item(self, vault):
        item_id = vault.add_item("Old", ItemType.LOGIN, login_content("x"))

        assert vault.trash_item(item_id)
        assert not vault.trash_item("missing")
        assert vault.list_items()[0].trashed

    def test_type_mismatch(self, vault):
        with pytest.raises(VaultError):
            vault.add_item("Router", ItemType.PASSWORD, login_content("x"))
        with pytest.raises(VaultError):
            vault.add_item("Mail", ItemType.LOGIN, PasswordRecord(password="x"))

    def test_tampered_content(self, vault):
        item_id = vault.add_item("Mail", ItemType.LOGIN, login_content("x"))
        item_file = vault.items_path / f"{item_id}.json"
        data = json.loads(item_file.read_text())
        data["content"] = data["content"][:-4] + "AAAA"
        item_file.write_text(json.dumps(data))

        (item,) = vault.list_items()
        with pytest.raises(VaultError, match="cannot decrypt item 'Mail'"):
            item.content()

    def test_corrupt_item_file(self, vault):
        (vault.items_path / "bad.json").write_text("{")

        with pytest.raises(VaultError, match="bad.json"):
            vault.list_items()

    def _rewrite_content(self, vault, item_id, content):
        item_file = vault.items_path / f"{item_id}.json"
        data = json.loads(item_file.read_text())
        data["content"] = vault._encrypt_json(content)
        item_file.write_text(json.dumps(data))

    def test_malformed_url_entries(self, vault):
        item_id = vault.add_item("Router", ItemType.PASSWORD, PasswordRecord(password="x"))
        self._rewrite_content(vault, item_id, {"password": "x", "urls": ["https://router.local"]})

        (item,) = vault.list_items()
        with pytest.raises(VaultError, match="item 'Router' has a malformed password record"):
            item.password_record()

    @pytest.mark.parametrize("fields", [[5], ["username"], 5])
    def test_malformed_fields(self, vault, fields):
        item_id = vault.add_item("Mail", ItemType.LOGIN, login_content("x"))
        self._rewrite_content(vault, item_id, {"fields": fields})

        (item,) = vault.list_items()
        with pytest.raises(VaultError, match="item 'Mail' has malformed fields"):
            item.content()
