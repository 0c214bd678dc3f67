# (c) Copyright Datacraft, 2026
"""Moving passkeys between the store and sealed vault files."""
import logging
import time
from pathlib import Path
from typing import TypeVar

from passkey_store.services.store import CredentialStore
from .crypto import LocalKeyPair
from .schema import OPEN_BOX_EXT, SEALED_BOX_EXT, OpenBox, Passkey, SealedBox, Vault, VaultModel

logger = logging.getLogger(__name__)

DEFAULT_OPEN_BOX_NAME = f"vault{OPEN_BOX_EXT}"

M = TypeVar("M", bound=VaultModel)


def write_box(path: Path, box: VaultModel) -> Path:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(box.to_json(), encoding="utf-8")
	return path


def load_box(path: Path, model: type[M]) -> M:
	return model.model_validate_json(path.read_text(encoding="utf-8"))


def resolve_open_box_path(path: Path) -> Path:
	"""Where an import writes its open box.

	A path with a suffix names the file itself; anything else is taken as
	the directory to place ``vault.openbox`` in.
	"""
	if path.suffix:
		return path
	return path / DEFAULT_OPEN_BOX_NAME


def wait_for_sealed_box(
	directory: Path,
	timeout: float,
	interval: float = 0.5,
	ignore: set[Path] | None = None,
) -> Path:
	"""Poll ``directory`` until a sealed box shows up.

	Files listed in ``ignore`` (typically those present before the
	exchange started) are skipped.
	"""
	ignore = ignore or set()
	deadline = time.monotonic() + timeout
	while True:
		found = sorted(
			p for p in directory.glob(f"*{SEALED_BOX_EXT}")
			if p.is_file() and p not in ignore
		)
		if found:
			return found[0]
		if time.monotonic() >= deadline:
			raise TimeoutError(f"No sealed box appeared in {directory} within {timeout}s")
		time.sleep(interval)


def export_vault(
	store: CredentialStore,
	open_box: OpenBox,
	key_pair: LocalKeyPair | None = None,
) -> SealedBox:
	"""Seal every stored passkey for the owner of ``open_box``.

	Credentials whose key is not base64 cannot be carried in a vault and
	are skipped with a warning.
	"""
	passkeys = []
	for credential in store.list_all():
		try:
			passkeys.append(Passkey.from_credential(credential))
		except ValueError as e:
			logger.warning(f"Skipping passkey {credential.id} in export: {e}")
	vault = Vault(passkeys=passkeys)
	key_pair = key_pair or LocalKeyPair.generate()
	sealed = key_pair.seal(open_box, vault)
	logger.info(f"Exported {len(vault.passkeys)} passkeys")
	return sealed


def import_vault(
	store: CredentialStore,
	key_pair: LocalKeyPair,
	sealed: SealedBox,
) -> list[Passkey]:
	"""Open ``sealed`` with ``key_pair`` and store its passkeys."""
	vault = key_pair.open(sealed)
	store.import_many(p.to_credential() for p in vault.passkeys)
	return vault.passkeys
