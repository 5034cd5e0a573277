"""CLI entry point for delegation-identity.

Invoked as::

    delegation-identity [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m delegation_identity.cli.main

Commands
--------
version        Show version information
keygen         Generate an Ed25519 key file
pubkey         Print the DER public key of a key file
delegate       Create or extend a delegation chain
inspect        Display the hops of a delegation chain
sign-request   Sign a request record with a delegation chain
"""
from __future__ import annotations

import asyncio
import datetime
import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from delegation_identity.errors import DelegationError
from delegation_identity.identity.delegation import DelegationChain, DelegationIdentity
from delegation_identity.identity.ed25519 import Ed25519KeyIdentity
from delegation_identity.identity.signer import DerPublicKey
from delegation_identity.models import RequestRecord
from delegation_identity.principal import Principal
from delegation_identity.request_id import canonicalize

console = Console()


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="delegation-identity")
@click.option(
    "--log-level",
    default="WARNING",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level.",
)
def cli(log_level: str) -> None:
    """Delegation chains and delegation-aware request signing"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from delegation_identity import __version__

    console.print(f"[bold]delegation-identity[/bold] v{__version__}")


# ------------------------------------------------------------------
# keygen / pubkey
# ------------------------------------------------------------------


@cli.command(name="keygen")
@click.option(
    "--output",
    type=click.Path(),
    default=None,
    help="Write the key JSON to this file path instead of stdout.",
)
def keygen_command(output: str | None) -> None:
    """Generate a new Ed25519 key. The output contains the private key."""
    identity = Ed25519KeyIdentity.generate()
    key_json = json.dumps(identity.to_json())

    if output:
        Path(output).write_text(key_json, encoding="utf-8")
        console.print(f"[green]Key written to[/green] {output}")
        console.print(f"  Public key: {identity.get_public_key().to_hex()}")
    else:
        click.echo(key_json)


@cli.command(name="pubkey")
@click.argument("key_file", type=click.Path(exists=True))
def pubkey_command(key_file: str) -> None:
    """Print the DER public key (hex) of KEY_FILE."""
    identity = _load_key(key_file)
    click.echo(identity.get_public_key().to_hex())


# ------------------------------------------------------------------
# delegate
# ------------------------------------------------------------------


@cli.command(name="delegate")
@click.argument("key_file", type=click.Path(exists=True))
@click.argument("delegate_pubkey")
@click.option(
    "--previous",
    type=click.Path(exists=True),
    default=None,
    help="Chain file to extend. KEY_FILE must hold its last delegated key.",
)
@click.option(
    "--ttl",
    type=click.IntRange(min=1),
    default=900,
    show_default=True,
    help="Delegation lifetime in seconds.",
)
@click.option(
    "--target",
    "-t",
    multiple=True,
    help="Principal the delegation is restricted to (repeatable).",
)
@click.option(
    "--output",
    type=click.Path(),
    default=None,
    help="Write the chain JSON to this file path instead of stdout.",
)
def delegate_command(
    key_file: str,
    delegate_pubkey: str,
    previous: str | None,
    ttl: int,
    target: tuple[str, ...],
    output: str | None,
) -> None:
    """Delegate from the key in KEY_FILE to DELEGATE_PUBKEY (DER hex)."""
    identity = _load_key(key_file)
    previous_chain = _load_chain(previous) if previous else None

    try:
        to = DerPublicKey(bytes.fromhex(delegate_pubkey))
        targets = [Principal.from_text(text) for text in target]
    except (DelegationError, ValueError) as exc:
        _fail(str(exc))

    try:
        expiration = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(
            seconds=ttl
        )
    except OverflowError:
        _fail(f"--ttl {ttl} puts the expiration out of range")
    chain = asyncio.run(
        DelegationChain.create(
            identity, to, expiration, previous=previous_chain, targets=targets or None
        )
    )
    chain_json = json.dumps(chain.to_json(), indent=2)

    if output:
        Path(output).write_text(chain_json, encoding="utf-8")
        console.print(f"[green]Chain written to[/green] {output}")
        console.print(f"  Depth:    {len(chain)}")
        console.print(f"  Root key: {chain.public_key.hex()}")
        console.print(f"  Expires:  {expiration.isoformat()}")
    else:
        click.echo(chain_json)


# ------------------------------------------------------------------
# inspect
# ------------------------------------------------------------------


@cli.command(name="inspect")
@click.argument("chain_file", type=click.Path(exists=True))
def inspect_command(chain_file: str) -> None:
    """Display every delegation in CHAIN_FILE, root first."""
    chain = _load_chain(chain_file)

    table = Table(title="Delegation Chain", show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Delegate key", style="cyan")
    table.add_column("Expires")
    table.add_column("Targets")

    for index, signed in enumerate(chain.delegations):
        delegation = signed.delegation
        try:
            expires = delegation.expires_at.isoformat()
        except OverflowError:
            expires = f"0x{delegation.expiration:x} ns"
        targets = (
            ", ".join(t.to_text() for t in delegation.targets)
            if delegation.targets is not None
            else "(any)"
        )
        table.add_row(str(index), delegation.pubkey.hex()[-16:], expires, targets)

    console.print(table)
    console.print(f"\n  Root key: {chain.public_key.hex()}")
    console.print(f"  Depth:    {len(chain)}")


# ------------------------------------------------------------------
# sign-request
# ------------------------------------------------------------------


@cli.command(name="sign-request")
@click.argument("key_file", type=click.Path(exists=True))
@click.argument("chain_file", type=click.Path(exists=True))
@click.argument("request_file", type=click.Path(exists=True))
def sign_request_command(key_file: str, chain_file: str, request_file: str) -> None:
    """Sign REQUEST_FILE with KEY_FILE on behalf of CHAIN_FILE's root.

    Byte values in the printed request are hex-encoded, and
    ``sender_delegation`` uses the same encoding as the chain file.
    """
    identity = _load_key(key_file)
    chain = _load_chain(chain_file)

    try:
        request = RequestRecord.model_validate_json(
            Path(request_file).read_text(encoding="utf-8")
        )
    except ValidationError as exc:
        _fail(f"Invalid request file: {exc.error_count()} validation error(s)")

    delegated = DelegationIdentity.from_delegation(identity, chain)
    transformed = asyncio.run(delegated.transform_request(request.model_dump()))
    rendered = canonicalize(transformed)
    rendered["body"]["sender_delegation"] = chain.to_json()["delegations"]
    click.echo(json.dumps(rendered, indent=2))


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _load_key(key_file: str) -> Ed25519KeyIdentity:
    """Return the Ed25519 identity stored in *key_file*, or exit with an error."""
    try:
        return Ed25519KeyIdentity.from_json(Path(key_file).read_text(encoding="utf-8"))
    except (DelegationError, ValueError) as exc:
        _fail(f"Could not load key file {key_file}: {exc}")


def _load_chain(chain_file: str) -> DelegationChain:
    """Return the chain stored in *chain_file*, or exit with an error."""
    try:
        return DelegationChain.from_json(Path(chain_file).read_text(encoding="utf-8"))
    except DelegationError as exc:
        _fail(f"Could not load chain file {chain_file}: {exc}")


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


if __name__ == "__main__":
    cli()
