"""Key store backends for hardware-backed style key storage.

A key store holds asymmetric key pairs under an alias and never hands out
private key material. Callers receive a :class:`KeyPairHandle` carrying the
public key, and reach the private key only through :meth:`KeyStore.sign`.
Every generated key gets an attestation certificate chain.

Two software implementations are provided, both using the ``cryptography``
library:

- :class:`SoftwareKeyStore` keeps keys in memory for the life of the process.
- :class:`FileKeyStore` persists keys to a directory so they survive across
  runs, the way a platform key store does.

Example:
    >>> from signingdemo.keystore import SoftwareKeyStore
    >>> from signingdemo.models import KeyGenSpec
    >>>
    >>> store = SoftwareKeyStore()
    >>> handle = store.generate(KeyGenSpec(alias="my_ecdsa_key"))
    >>> store.exists("my_ecdsa_key")
    True
    >>> chain = store.get_certificate_chain("my_ecdsa_key")
"""

import json
import logging
import re
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from signingdemo.attestation import AttestationAuthority
from signingdemo.errors import (
    KeyGenerationError,
    KeyNotFoundError,
    KeyStoreError,
    SigningError,
)
from signingdemo.models import (
    ALIAS_PATTERN,
    Digest,
    KeyAlgorithm,
    KeyDescription,
    KeyGenSpec,
    KeyInfo,
    KeyOrigin,
    KeyPairHandle,
    KeyPurpose,
    SecurityLevel,
)
from signingdemo.utils import write_private_file

logger = logging.getLogger(__name__)

_CURVES: dict[KeyAlgorithm, ec.EllipticCurve] = {
    KeyAlgorithm.EC_P256: ec.SECP256R1(),
}

_DIGESTS: dict[Digest, type[hashes.HashAlgorithm]] = {
    Digest.SHA256: hashes.SHA256,
}


class KeyStore(ABC):
    """Abstract base class for key store implementations.

    Provides the interface for alias lookup, key pair generation and
    deletion, certificate chain retrieval, and the private-key signing
    operation.
    """

    @property
    @abstractmethod
    def supports_strongbox(self) -> bool:
        """Whether StrongBox (hardware security module) backing is available."""

    @abstractmethod
    def exists(self, alias: str) -> bool:
        """Return True if a key pair is stored under ``alias``."""

    @abstractmethod
    def aliases(self) -> list[str]:
        """List the aliases of all stored key pairs."""

    @abstractmethod
    def delete(self, alias: str) -> None:
        """Delete the key pair stored under ``alias``.

        Raises:
            KeyNotFoundError: If nothing is stored under ``alias``
        """

    @abstractmethod
    def generate(self, spec: KeyGenSpec) -> KeyPairHandle:
        """Generate a key pair and store it under ``spec.alias``.

        Args:
            spec: Key generation parameters

        Returns:
            Handle to the new key pair

        Raises:
            KeyGenerationError: If the alias is taken, the algorithm is
                unsupported, or StrongBox was requested but is unavailable
        """

    @abstractmethod
    def get_handle(self, alias: str) -> KeyPairHandle:
        """Return the handle for the key pair stored under ``alias``.

        Raises:
            KeyNotFoundError: If nothing is stored under ``alias``
        """

    @abstractmethod
    def get_key_info(self, alias: str) -> KeyInfo:
        """Return the properties of the key stored under ``alias``.

        Raises:
            KeyNotFoundError: If nothing is stored under ``alias``
        """

    @abstractmethod
    def get_certificate_chain(self, alias: str) -> list[bytes]:
        """Return the DER attestation chain for ``alias``, leaf first.

        Raises:
            KeyNotFoundError: If nothing is stored under ``alias``
        """

    @abstractmethod
    def sign(self, handle: KeyPairHandle, digest: Digest, message: bytes) -> bytes:
        """Sign ``message`` with the private key behind ``handle``.

        Args:
            handle: Handle to the signing key
            digest: Digest to hash the message with
            message: Message bytes

        Returns:
            DER-encoded ECDSA signature

        Raises:
            KeyNotFoundError: If the handle no longer refers to a stored key
            SigningError: If the key is not authorized for this operation
        """


class SoftwareKeyStore(KeyStore):
    """In-memory key store for development and testing.

    Keys are generated with the ``cryptography`` library and held in memory,
    so they are lost when the process exits. Attestation chains are issued
    by a local :class:`AttestationAuthority`.

    StrongBox backing can be emulated with ``strongbox_available=True``, in
    which case keys generated with ``strongbox_backed`` report the
    ``strongbox`` security level.
    """

    def __init__(
        self,
        strongbox_available: bool = False,
        authority: AttestationAuthority | None = None,
    ) -> None:
        """Initialize an empty software key store.

        Args:
            strongbox_available: Emulate an available StrongBox
            authority: Attestation authority. A fresh one is created if None.
        """
        self._strongbox_available = strongbox_available
        self._authority = authority or AttestationAuthority.create()
        self._entries: dict[str, dict[str, Any]] = {}

    @property
    def supports_strongbox(self) -> bool:
        return self._strongbox_available

    @property
    def authority(self) -> AttestationAuthority:
        return self._authority

    def exists(self, alias: str) -> bool:
        return alias in self._entries

    def aliases(self) -> list[str]:
        return sorted(self._entries)

    def delete(self, alias: str) -> None:
        if alias not in self._entries:
            raise KeyNotFoundError(f"Key not found: {alias}")
        del self._entries[alias]
        logger.info(f"Deleted key {alias}")

    def generate(self, spec: KeyGenSpec) -> KeyPairHandle:
        if spec.alias in self._entries:
            raise KeyGenerationError(f"Alias already in use: {spec.alias}")
        if spec.algorithm not in _CURVES:
            raise KeyGenerationError(f"Unsupported algorithm: {spec.algorithm}")
        unsupported = [d for d in spec.digests if d not in _DIGESTS]
        if unsupported:
            raise KeyGenerationError(f"Unsupported digests: {unsupported}")
        if spec.strongbox_backed and not self._strongbox_available:
            raise KeyGenerationError("StrongBox requested but not available")

        security_level = (
            SecurityLevel.STRONGBOX if spec.strongbox_backed else SecurityLevel.SOFTWARE
        )
        private_key = ec.generate_private_key(_CURVES[spec.algorithm])
        public_der = private_key.public_key().public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )

        handle = KeyPairHandle(
            alias=spec.alias,
            key_id=str(uuid.uuid4()),
            algorithm=spec.algorithm,
            public_key=public_der,
            security_level=security_level,
        )
        info = KeyInfo(
            alias=spec.alias,
            algorithm=spec.algorithm,
            origin=KeyOrigin.GENERATED,
            security_level=security_level,
            purposes=spec.purposes,
            digests=spec.digests,
            user_authentication_required=spec.user_authentication_required,
            user_presence_required=spec.user_presence_required,
            user_confirmation_required=spec.user_confirmation_required,
            unlocked_device_required=spec.unlocked_device_required,
        )
        description = KeyDescription(
            challenge=spec.attestation_challenge.hex(),
            security_level=security_level,
            origin=KeyOrigin.GENERATED,
            purposes=spec.purposes,
            digests=spec.digests,
            user_authentication_required=spec.user_authentication_required,
            user_presence_required=spec.user_presence_required,
            user_confirmation_required=spec.user_confirmation_required,
            unlocked_device_required=spec.unlocked_device_required,
        )
        chain = self._authority.issue(spec.alias, private_key.public_key(), description)

        self._entries[spec.alias] = {
            "handle": handle,
            "info": info,
            "private_key": private_key,
            "chain": chain,
        }

        logger.info(
            f"Generated {spec.algorithm.value} key {spec.alias} "
            f"(security_level={security_level.value})"
        )
        return handle

    def _entry(self, alias: str) -> dict[str, Any]:
        if alias not in self._entries:
            raise KeyNotFoundError(f"Key not found: {alias}")
        return self._entries[alias]

    def get_handle(self, alias: str) -> KeyPairHandle:
        return self._entry(alias)["handle"]

    def get_key_info(self, alias: str) -> KeyInfo:
        return self._entry(alias)["info"]

    def get_certificate_chain(self, alias: str) -> list[bytes]:
        return list(self._entry(alias)["chain"])

    def sign(self, handle: KeyPairHandle, digest: Digest, message: bytes) -> bytes:
        entry = self._entry(handle.alias)
        if entry["handle"].key_id != handle.key_id:
            raise KeyNotFoundError(
                f"Key {handle.alias} was regenerated; handle {handle.key_id} is stale"
            )

        info: KeyInfo = entry["info"]
        if KeyPurpose.SIGN not in info.purposes:
            raise SigningError(f"Key {handle.alias} is not authorized for signing")
        if digest not in info.digests:
            raise SigningError(f"Key {handle.alias} is not authorized for digest {digest.value}")

        signature = entry["private_key"].sign(message, ec.ECDSA(_DIGESTS[digest]()))
        logger.debug(f"Signed {len(message)} bytes with key {handle.alias}")
        return signature


class FileKeyStore(SoftwareKeyStore):
    """Key store persisted to a directory.

    Each alias is stored as ``<alias>.json`` (handle, key info and
    attestation chain) and ``<alias>.key.pem`` (PKCS#8 private key,
    encrypted when a passphrase is configured). The attestation authority is
    kept under ``authority/``. All private files are written with mode 0600.
    """

    def __init__(
        self,
        directory: Path,
        passphrase: str | None = None,
        strongbox_available: bool = False,
    ) -> None:
        """Open (or create) a key store rooted at ``directory``.

        Args:
            directory: Directory holding the key files
            passphrase: Optional passphrase encrypting private keys at rest
            strongbox_available: Emulate an available StrongBox

        Raises:
            AttestationError: If an existing attestation authority cannot be loaded
            KeyStoreError: If a stored key cannot be read
        """
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        self._passphrase = passphrase.encode() if passphrase else None
        if self._passphrase is None:
            logger.warning(f"Key store {self._directory} has no passphrase; keys stored unencrypted")

        authority_dir = self._directory / "authority"
        if AttestationAuthority.exists(authority_dir):
            authority = AttestationAuthority.load(authority_dir, self._passphrase)
        else:
            authority = AttestationAuthority.create()
            authority.save(authority_dir, self._passphrase)

        super().__init__(strongbox_available=strongbox_available, authority=authority)
        self._load_entries()

    @property
    def directory(self) -> Path:
        return self._directory

    def _metadata_path(self, alias: str) -> Path:
        return self._directory / f"{alias}.json"

    def _key_path(self, alias: str) -> Path:
        return self._directory / f"{alias}.key.pem"

    def _load_entries(self) -> None:
        for path in sorted(self._directory.glob("*.json")):
            alias = path.stem
            if not re.match(ALIAS_PATTERN, alias):
                continue
            try:
                self._entries[alias] = self._read_entry(alias)
            except (OSError, ValueError, TypeError) as e:
                raise KeyStoreError(f"Failed to load key {alias} from {path}: {e}") from e
        logger.debug(f"Loaded {len(self._entries)} keys from {self._directory}")

    def _read_entry(self, alias: str) -> dict[str, Any]:
        metadata = json.loads(self._metadata_path(alias).read_text())
        private_key = serialization.load_pem_private_key(
            self._key_path(alias).read_bytes(), self._passphrase
        )
        handle = KeyPairHandle(
            alias=alias,
            key_id=metadata["key_id"],
            algorithm=metadata["algorithm"],
            public_key=bytes.fromhex(metadata["public_key"]),
            security_level=metadata["security_level"],
            created_at=datetime.fromisoformat(metadata["created_at"]),
        )
        return {
            "handle": handle,
            "info": KeyInfo.model_validate(metadata["info"]),
            "private_key": private_key,
            "chain": [bytes.fromhex(cert) for cert in metadata["chain"]],
        }

    def _write_entry(self, alias: str) -> None:
        entry = self._entries[alias]
        handle: KeyPairHandle = entry["handle"]
        metadata = {
            "key_id": handle.key_id,
            "algorithm": handle.algorithm.value,
            "public_key": handle.public_key.hex(),
            "security_level": handle.security_level.value,
            "created_at": handle.created_at.isoformat(),
            "info": entry["info"].model_dump(mode="json"),
            "chain": [cert.hex() for cert in entry["chain"]],
        }
        encryption: serialization.KeySerializationEncryption = (
            serialization.BestAvailableEncryption(self._passphrase)
            if self._passphrase
            else serialization.NoEncryption()
        )
        write_private_file(
            self._key_path(alias),
            entry["private_key"].private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                encryption,
            ),
        )
        write_private_file(self._metadata_path(alias), json.dumps(metadata, indent=2).encode())

    def generate(self, spec: KeyGenSpec) -> KeyPairHandle:
        handle = super().generate(spec)
        try:
            self._write_entry(spec.alias)
        except OSError as e:
            del self._entries[spec.alias]
            self._metadata_path(spec.alias).unlink(missing_ok=True)
            self._key_path(spec.alias).unlink(missing_ok=True)
            raise KeyGenerationError(f"Failed to persist key {spec.alias}: {e}") from e
        return handle

    def delete(self, alias: str) -> None:
        super().delete(alias)
        self._metadata_path(alias).unlink(missing_ok=True)
        self._key_path(alias).unlink(missing_ok=True)
