# (c) Copyright Datacraft, 2026
"""Command line for listing, exporting and importing passkeys."""
import logging
from pathlib import Path
from typing import Iterable, Optional

import typer

from passkey_store.config import get_settings
from passkey_store.exceptions import PasskeyStoreError
from passkey_store.schema import PasskeyCredential
from passkey_store.services.store import CredentialStore
from passkey_store.vault.crypto import LocalKeyPair, VaultCryptoError
from passkey_store.vault.exchange import (
	export_vault,
	import_vault,
	load_box,
	resolve_open_box_path,
	wait_for_sealed_box,
	write_box,
)
from passkey_store.vault.schema import SEALED_BOX_EXT, OpenBox, SealedBox

logger = logging.getLogger(__name__)

app = typer.Typer(help="Move passkeys between credential vaults.")


def get_store() -> CredentialStore:
	from passkey_store.db import init_db
	from passkey_store.db.engine import Session, get_engine

	init_db(get_engine())
	return CredentialStore(Session)


def print_passkeys(credentials: Iterable[PasskeyCredential]) -> None:
	count = 0
	for credential in credentials:
		typer.echo(
			f"{credential.id}\t{credential.rp_id}\t"
			f"{credential.rp_name}\t{credential.username}\t"
			f"counter={credential.counter}"
		)
		count += 1
	if count == 0:
		typer.echo("No passkeys stored.")


def fail(message: str) -> None:
	typer.echo(f"Error: {message}", err=True)
	raise typer.Exit(code=1)


@app.callback()
def main() -> None:
	settings = get_settings()
	logging.basicConfig(
		level=settings.log_level.value,
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)


@app.command("list", help="List the stored passkeys.")
def list_passkeys() -> None:
	try:
		store = get_store()
		print_passkeys(store.list_all())
	except PasskeyStoreError as e:
		fail(str(e))


@app.command("export", help="Seal the stored passkeys for the owner of an open box.")
def export(
	open_box_path: Path = typer.Argument(..., exists=True, dir_okay=False),
	output: Optional[Path] = typer.Option(None, "--output", "-o", help="Where to write the sealed box."),
) -> None:
	try:
		open_box = load_box(open_box_path, OpenBox)
		sealed = export_vault(get_store(), open_box)
	except (PasskeyStoreError, VaultCryptoError, ValueError) as e:
		fail(str(e))

	target = output or open_box_path.with_suffix(SEALED_BOX_EXT)
	write_box(target, sealed)
	typer.echo(f"Sealed box written to {target}")


@app.command("import", help="Publish an open box, wait for the sealed reply and import it.")
def import_(
	path: Path = typer.Argument(..., help="Directory or file for the open box."),
	timeout: Optional[float] = typer.Option(
		None, "--timeout", min=0.0, help="Seconds to wait for the sealed box."
	),
) -> None:
	settings = get_settings()
	open_box_path = resolve_open_box_path(path)
	directory = open_box_path.parent

	try:
		store = get_store()
		key_pair = LocalKeyPair.generate()
		stale = set(directory.glob(f"*{SEALED_BOX_EXT}")) if directory.exists() else set()
		write_box(open_box_path, key_pair.to_open_box())

		typer.echo(f"Waiting for sealed box in {directory}")
		sealed_path = wait_for_sealed_box(
			directory,
			timeout=settings.import_timeout if timeout is None else timeout,
			interval=settings.poll_interval,
			ignore=stale,
		)
		sealed = load_box(sealed_path, SealedBox)
		passkeys = import_vault(store, key_pair, sealed)
	except (TimeoutError, PasskeyStoreError, VaultCryptoError, ValueError) as e:
		fail(str(e))

	print_passkeys(p.to_credential() for p in passkeys)


if __name__ == "__main__":
	app()
