"""
pwnscan CLI - Main entry point for the command-line interface.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import json
import logging
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from pwnscan import __version__
from pwnscan.config import MASTER_PASSWORD_ENV, ScanConfig
from pwnscan.exceptions import (
    ProtocolError,
    TransportError,
    UserInputError,
    VaultError,
)
from pwnscan.hibp.client import BreachChecker
from pwnscan.hibp.models import Finding, RiskLevel
from pwnscan.vault.base import (
    FieldType,
    FormField,
    ItemContent,
    ItemType,
    PasswordRecord,
    UrlPassword,
)
from pwnscan.vault.keychain import META_FILE, KeychainVault
from pwnscan.vault.scanner import CredentialScanner, ErrorPolicy

console = Console()
err_console = Console(stderr=True)


def risk_color(risk: RiskLevel) -> str:
    """Get color for risk level."""
    colors = {
        RiskLevel.SAFE: "green",
        RiskLevel.LOW: "yellow",
        RiskLevel.MEDIUM: "orange3",
        RiskLevel.HIGH: "red",
        RiskLevel.CRITICAL: "bold red",
    }
    return colors.get(risk, "white")


def fail(message: str, hint: str | None = None) -> NoReturn:
    """Print an error and exit with status 1."""
    err_console.print(f"[red]{escape(message)}[/red]", highlight=False, soft_wrap=True)
    if hint:
        err_console.print(hint, highlight=False, markup=False, soft_wrap=True)
    raise SystemExit(1)


def configure_logging(verbose: bool) -> None:
    """Route pwnscan log records to stderr."""
    package_logger = logging.getLogger("pwnscan")
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not package_logger.handlers:
        package_logger.addHandler(RichHandler(console=err_console, show_path=False))


def load_config(timeout: float | None = None) -> ScanConfig:
    """Load configuration from the environment and CLI overrides.

    Raises:
        UserInputError: If the resulting configuration is invalid
    """
    config = ScanConfig.from_env()
    if timeout is not None:
        config.timeout = timeout

    errors = config.validate()
    if errors:
        raise UserInputError("; ".join(errors))
    return config


def get_master_password(config: ScanConfig, confirm: bool = False) -> str:
    """Get the master password from the environment or prompt for it."""
    if config.master_password:
        return config.master_password
    return click.prompt("Master Password", hide_input=True, confirmation_prompt=confirm)


def report_finding(finding: Finding) -> None:
    """Print a compromised password to stderr."""
    err_console.print(
        f"Compromised password found: [red]{escape(finding.password)}[/red] "
        f"({escape(finding.title)}, leaked {finding.occurrences:,} times)",
        highlight=False,
        soft_wrap=True,
    )
    if finding.is_master_password:
        err_console.print(
            "[yellow]Your vault master password has been pwned, and it protects all other data in the vault.[/yellow]"
        )
        err_console.print("[yellow]Change your master password immediately![/yellow]")


@click.group()
@click.version_option(version=__version__, prog_name="pwnscan")
@click.pass_context
def main(ctx: click.Context) -> None:
    """pwnscan - Pwned Passwords vault scanner

    Checks the passwords in a vault against the Have I Been Pwned
    Pwned Passwords corpus. Only the first 5 characters of each
    password's SHA-1 hash ever leave this machine.
    """
    ctx.ensure_object(dict)
    ctx.obj["console"] = console
    configure_logging(verbose=False)


@main.command("scan")
@click.argument("vault_path", metavar="VAULT", type=click.Path())
@click.option("--verbose", "-v", is_flag=True, help="Show item names as they are scanned")
@click.option("--keep-going", is_flag=True, help="Skip passwords that cannot be checked instead of aborting")
@click.option("--timeout", type=float, help="Seconds to wait for each API request")
@click.option("--json", "json_output", is_flag=True, help="Output summary as JSON")
@click.pass_context
def scan(
    ctx: click.Context,
    vault_path: str,
    verbose: bool,
    keep_going: bool,
    timeout: float | None,
    json_output: bool,
) -> None:
    """Scan every password in a vault for breaches.

    The master password is read from PWNSCAN_MASTER_PASSWORD or
    prompted for. Compromised passwords are printed to stderr in
    plaintext, so only run this in a trusted terminal.

    Example:
        pwnscan scan ~/vaults/personal
    """
    configure_logging(verbose)

    try:
        config = load_config(timeout)
    except UserInputError as e:
        fail(f"Invalid configuration: {e}", hint="Check the PWNSCAN_* environment variables.")

    try:
        vault = KeychainVault.open(vault_path)
    except VaultError as e:
        fail(f"not a valid vault: {e}", hint="Usage: pwnscan scan [--verbose] <path/to/vault>")

    if verbose:
        console.print(f"Opened vault: {vault_path}", highlight=False, markup=False, soft_wrap=True)

    master_password = get_master_password(config)

    try:
        vault.unlock(master_password)
    except VaultError as e:
        fail(f"failed to unlock vault: {e}")

    if verbose:
        console.print(f"Unlocked vault: {vault_path}", highlight=False, markup=False, soft_wrap=True)

    def show_item(item) -> None:
        if verbose:
            console.print(item.title, highlight=False, markup=False)

    with BreachChecker.from_config(config) as checker:
        scanner = CredentialScanner(checker)
        try:
            report = scanner.run(
                vault,
                master_password=master_password,
                on_error=ErrorPolicy.SKIP if keep_going else ErrorPolicy.ABORT,
                progress=show_item,
                on_finding=report_finding,
            )
        except (TransportError, ProtocolError) as e:
            fail(f"Breach check failed: {e}", hint="Use --keep-going to skip passwords that cannot be checked.")
        except VaultError as e:
            fail(f"Vault scan failed: {e}")

    if json_output:
        console.print_json(json.dumps(report.to_dict(), default=str))
        return

    table = Table(title="Scan Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Items scanned", str(report.items_scanned))
    table.add_row("Passwords checked", str(report.passwords_checked))
    table.add_row(
        "Compromised",
        f"[red]{report.compromised_count}[/red]" if report.compromised_count else "[green]0[/green]",
    )
    if report.skipped:
        table.add_row("Skipped (errors)", f"[yellow]{len(report.skipped)}[/yellow]")

    console.print(table)


@main.command("password")
@click.option("--hash", "password_hash", help="SHA-1 hash to check instead")
@click.option("--timeout", type=float, help="Seconds to wait for the API request")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def check_password(
    ctx: click.Context,
    password_hash: str | None,
    timeout: float | None,
    json_output: bool,
) -> None:
    """Check a single password for breaches.

    Uses k-anonymity - only the first 5 characters of the SHA-1 hash
    are sent to the API. Your password never leaves your system.

    Example:
        pwnscan password
        pwnscan password --hash 5BAA61E4C9B93F3F0682250B6CF8331B7EE68FD8
    """
    try:
        config = load_config(timeout)
    except UserInputError as e:
        fail(f"Invalid configuration: {e}")

    password = None
    if not password_hash:
        password = click.prompt("Password to check", hide_input=True)

    with BreachChecker.from_config(config) as checker:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
            transient=True,
        ) as progress:
            progress.add_task("Checking password...", total=None)
            try:
                if password_hash:
                    occurrences = checker.check_hash(password_hash)
                else:
                    occurrences = checker.check_occurrences(password)
            except ValueError as e:
                fail(f"Invalid hash: {e}")
            except (TransportError, ProtocolError) as e:
                fail(f"Error: {e}")

    finding = Finding(title="password", password=password or "", occurrences=occurrences)

    if json_output:
        data = finding.to_dict()
        data.pop("password")
        data.pop("title")
        console.print_json(json.dumps(data))
        return

    color = risk_color(finding.risk_level)

    if occurrences == 0:
        console.print(Panel(
            f"[green]Good news![/green] This password has NOT been found in any known data breaches.\n\n"
            f"Risk Level: [{color}]{finding.risk_level.value.upper()}[/{color}]",
            title="Password Check Result"
        ))
    else:
        console.print(Panel(
            f"[red]Warning![/red] This password has been seen [bold]{occurrences:,}[/bold] times in data breaches!\n\n"
            f"Risk Level: [{color}]{finding.risk_level.value.upper()}[/{color}]\n\n"
            f"{finding.risk_description}",
            title="Password Check Result"
        ))


@main.command("add")
@click.argument("vault_path", metavar="VAULT", type=click.Path())
@click.option("--title", "-t", required=True, help="Item title")
@click.option(
    "--type", "item_type",
    type=click.Choice([t.value for t in ItemType]),
    default=ItemType.LOGIN.value,
    show_default=True,
    help="Item type",
)
@click.option("--username", "-u", default="", help="Username field")
@click.option("--url", "urls", multiple=True, help="URL (repeatable; password items prompt for a password per URL)")
@click.pass_context
def add_item(
    ctx: click.Context,
    vault_path: str,
    title: str,
    item_type: str,
    username: str,
    urls: tuple[str, ...],
) -> None:
    """Add an item to a vault, creating the vault if needed.

    Example:
        pwnscan add ~/vaults/personal --title "Mail" --username me --url https://mail.example.com
    """
    try:
        config = load_config()
    except UserInputError as e:
        fail(f"Invalid configuration: {e}")

    path = Path(vault_path)

    try:
        if (path / META_FILE).exists():
            vault = KeychainVault.open(path)
            vault.unlock(get_master_password(config))
        else:
            vault = KeychainVault.create(path, get_master_password(config, confirm=True))
            console.print(f"[green]Created vault at {escape(str(path))}[/green]", highlight=False, soft_wrap=True)
    except VaultError as e:
        fail(f"Cannot open vault: {e}", hint=f"The master password can also be set with {MASTER_PASSWORD_ENV}.")

    password = click.prompt("Item password", hide_input=True, default="", show_default=False)

    if item_type == ItemType.PASSWORD.value:
        content = PasswordRecord(
            password=password,
            urls=[
                UrlPassword(
                    url=url,
                    password=click.prompt(f"Password for {url}", hide_input=True, default="", show_default=False),
                )
                for url in urls
            ],
        )
    else:
        fields = []
        if username:
            fields.append(FormField(name="username", type=FieldType.TEXT.value, value=username))
        for url in urls:
            fields.append(FormField(name="url", type=FieldType.URL.value, value=url))
        fields.append(FormField(name="password", type=FieldType.PASSWORD.value, value=password))
        content = ItemContent(fields=fields)

    try:
        item_id = vault.add_item(title, item_type, content)
    except VaultError as e:
        fail(f"Cannot add item: {e}")

    console.print(f"[green]Added {item_type} item '{escape(title)}' ({item_id})[/green]", highlight=False)


if __name__ == "__main__":
    main()
