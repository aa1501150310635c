"""Signing workflow: generate, sign, verify, attest.

:class:`SigningWorkflow` is the controller. It is stateless per call: each
operation takes its inputs, talks to the key store and signature engine, and
returns a result or raises a :class:`~signingdemo.errors.SigningDemoError`.

:class:`WorkflowSession` is the state a presentation layer holds between
user actions: the current key pair, signature, attestation chain and status.
Each session operation wraps the matching controller call and turns any
workflow error into a failed :class:`WorkflowStatus`, so a failure never
escapes as an exception.

Example:
    >>> from signingdemo.keystore import SoftwareKeyStore
    >>> from signingdemo.workflow import SigningWorkflow, WorkflowSession
    >>>
    >>> session = WorkflowSession(SigningWorkflow(SoftwareKeyStore()))
    >>> session.generate().success
    True
    >>> session.sign().success
    True
    >>> session.verify().message
    'Signature verified: TRUE'
"""

import logging
import secrets
from enum import StrEnum

from pydantic import BaseModel

from signingdemo.attestation import AttestationChain
from signingdemo.config.schema import SigningDemoConfig
from signingdemo.errors import (
    AttestationError,
    KeyGenerationError,
    KeyNotFoundError,
    SigningDemoError,
)
from signingdemo.keystore import FileKeyStore, KeyStore, SoftwareKeyStore
from signingdemo.models import KeyGenSpec, KeyInfo, KeyPairHandle
from signingdemo.signature import SignatureAlgorithm, SignatureEngine
from signingdemo.utils import to_hex

logger = logging.getLogger(__name__)

DEFAULT_ALIAS = "my_ecdsa_key"
DEFAULT_MESSAGE = b"Hello, ECDSA! This message will be signed."
DEFAULT_CHALLENGE_LENGTH = 20

VERIFIED_TRUE = "Signature verified: TRUE"
VERIFIED_FALSE = "Signature verified: FALSE"


class StrongBoxPolicy(StrEnum):
    """Behaviour when StrongBox is requested but the key store lacks it.

    Attributes:
        FALLBACK: Log a warning and generate at the default security level
        REQUIRE: Fail key generation
    """

    FALLBACK = "fallback"
    REQUIRE = "require"


class WorkflowState(StrEnum):
    """Progress of a workflow session."""

    UNKEYED = "unkeyed"
    KEYED = "keyed"
    SIGNED = "signed"
    VERIFIED = "verified"
    ATTESTED = "attested"


class WorkflowStatus(BaseModel):
    """Outcome of the most recent session operation, for display."""

    success: bool
    message: str


def create_key_store(config: SigningDemoConfig) -> KeyStore:
    """Build the key store selected by ``config.keystore``."""
    if config.keystore.backend == "memory":
        return SoftwareKeyStore(strongbox_available=config.keystore.strongbox_available)
    return FileKeyStore(
        config.keystore.path,
        passphrase=config.keystore.passphrase,
        strongbox_available=config.keystore.strongbox_available,
    )


class SigningWorkflow:
    """Controller for the generate, sign, verify and attest operations."""

    def __init__(
        self,
        key_store: KeyStore,
        engine: SignatureEngine | None = None,
        algorithm: SignatureAlgorithm = SignatureAlgorithm.SHA256_WITH_ECDSA,
        strongbox_policy: StrongBoxPolicy = StrongBoxPolicy.FALLBACK,
        challenge_length: int = DEFAULT_CHALLENGE_LENGTH,
        unlocked_device_required: bool = True,
        user_authentication_required: bool = False,
    ) -> None:
        """Initialize the workflow.

        Args:
            key_store: Key store holding the key pairs
            engine: Signature engine. Defaults to one bound to ``key_store``.
            algorithm: Signature algorithm for sign and verify
            strongbox_policy: Behaviour when StrongBox is unavailable
            challenge_length: Attestation challenge length in bytes
            unlocked_device_required: Key use requires an unlocked device
            user_authentication_required: Key use requires user authentication
        """
        self.key_store = key_store
        self.engine = engine or SignatureEngine(key_store)
        self.algorithm = algorithm
        self.strongbox_policy = strongbox_policy
        self.challenge_length = challenge_length
        self.unlocked_device_required = unlocked_device_required
        self.user_authentication_required = user_authentication_required

    @classmethod
    def from_config(cls, config: SigningDemoConfig) -> "SigningWorkflow":
        """Build a workflow and its key store from configuration."""
        return cls(
            create_key_store(config),
            algorithm=SignatureAlgorithm(config.signing.algorithm),
            strongbox_policy=StrongBoxPolicy(config.keygen.strongbox_policy),
            challenge_length=config.keygen.challenge_length,
            unlocked_device_required=config.keygen.unlocked_device_required,
            user_authentication_required=config.keygen.user_authentication_required,
        )

    def generate_key_pair(
        self, alias: str = DEFAULT_ALIAS, use_strongbox_if_available: bool = True
    ) -> KeyPairHandle:
        """Generate a fresh EC P-256 key pair under ``alias``.

        Any key pair already stored under ``alias`` is deleted first, so
        handles and signatures made with it stop being usable.

        Args:
            alias: Alias to store the key pair under
            use_strongbox_if_available: Request StrongBox backing

        Returns:
            Handle to the new key pair

        Raises:
            KeyGenerationError: If the key store fails, or StrongBox is
                required by policy but unavailable
        """
        strongbox = use_strongbox_if_available and self.key_store.supports_strongbox
        if use_strongbox_if_available and not strongbox:
            if self.strongbox_policy == StrongBoxPolicy.REQUIRE:
                raise KeyGenerationError("StrongBox required but not supported by key store")
            logger.warning(f"StrongBox not available, generating {alias} at default level")

        try:
            if self.key_store.exists(alias):
                self.key_store.delete(alias)

            spec = KeyGenSpec(
                alias=alias,
                strongbox_backed=strongbox,
                attestation_challenge=secrets.token_bytes(self.challenge_length),
                unlocked_device_required=self.unlocked_device_required,
                user_authentication_required=self.user_authentication_required,
            )
            handle = self.key_store.generate(spec)
        except KeyGenerationError:
            raise
        except (SigningDemoError, ValueError, OSError) as e:
            raise KeyGenerationError(f"Error generating keys: {e}") from e

        logger.info(
            f"Generated key pair {alias} (security_level={handle.security_level.value}, "
            f"aliases={len(self.key_store.aliases())})"
        )
        return handle

    def load_key_pair(self, alias: str = DEFAULT_ALIAS) -> KeyPairHandle:
        """Return the handle for a key pair already in the key store.

        Raises:
            KeyNotFoundError: If nothing is stored under ``alias``
        """
        if not self.key_store.exists(alias):
            raise KeyNotFoundError(f"Key not found: {alias}. Generate keys first.")
        return self.key_store.get_handle(alias)

    def key_info(self, alias: str = DEFAULT_ALIAS) -> KeyInfo:
        """Return the security level and origin of the key under ``alias``.

        Raises:
            KeyNotFoundError: If nothing is stored under ``alias``
        """
        if not self.key_store.exists(alias):
            raise KeyNotFoundError(f"Key not found: {alias}. Generate keys first.")
        return self.key_store.get_key_info(alias)

    def sign(self, handle: KeyPairHandle | None, message: bytes) -> bytes:
        """Sign ``message`` with the private key behind ``handle``.

        Raises:
            KeyNotFoundError: If there is no handle or its key no longer exists
            SigningError: If the signature engine fails
        """
        if handle is None:
            raise KeyNotFoundError("Key not found. Generate keys first.")
        if not self.key_store.exists(handle.alias):
            raise KeyNotFoundError(f"Key not found: {handle.alias}. Generate keys first.")

        signature = self.engine.sign(handle, self.algorithm, message)
        logger.debug(f"Signed message with {handle.alias} ({len(signature)} byte signature)")
        return signature

    def verify(self, public_key: bytes | None, message: bytes, signature: bytes | None) -> bool:
        """Verify ``signature`` over ``message`` against ``public_key``.

        Returns:
            True if valid, False for a well-formed signature that does not match

        Raises:
            MissingInputError: If the public key or signature is absent
            VerificationDecodeError: If the public key or signature is malformed
        """
        return self.engine.verify(public_key, self.algorithm, message, signature)

    def attest(self, alias: str = DEFAULT_ALIAS) -> AttestationChain:
        """Retrieve the attestation certificate chain for ``alias``.

        Returns:
            Chain of certificates, leaf first

        Raises:
            KeyNotFoundError: If nothing is stored under ``alias``
            AttestationError: If the chain is empty, malformed or unavailable
        """
        if not self.key_store.exists(alias):
            raise KeyNotFoundError(f"Public key not found: {alias}. Generate keys first.")

        try:
            certificates = self.key_store.get_certificate_chain(alias)
        except KeyNotFoundError:
            raise
        except (SigningDemoError, OSError) as e:
            raise AttestationError(f"Error attesting key: {e}") from e

        chain = AttestationChain.from_der_list(alias, certificates)
        logger.info(f"Attested {alias}: {len(chain.certificates)} certificates")
        for cert in chain.certificates:
            logger.debug(cert.hex())
        return chain


class WorkflowSession:
    """State held by a presentation layer across workflow operations.

    Every operation returns a :class:`WorkflowStatus` and also stores it in
    :attr:`status`. Workflow errors are reported, never raised.
    """

    def __init__(
        self,
        workflow: SigningWorkflow,
        alias: str = DEFAULT_ALIAS,
        message: bytes = DEFAULT_MESSAGE,
    ) -> None:
        self.workflow = workflow
        self.alias = alias
        self.message = message
        self.key_pair: KeyPairHandle | None = None
        self.signature: bytes | None = None
        self.attestation: AttestationChain | None = None
        self.state = WorkflowState.UNKEYED
        self.status = WorkflowStatus(
            success=True, message="Session started. Generate keys to begin."
        )

    @property
    def can_sign(self) -> bool:
        return self.key_pair is not None

    @property
    def can_verify(self) -> bool:
        return self.signature is not None

    @property
    def can_attest(self) -> bool:
        return self.key_pair is not None

    @property
    def public_key_hex(self) -> str:
        return to_hex(self.key_pair.public_key if self.key_pair else None)

    @property
    def signature_hex(self) -> str:
        return to_hex(self.signature)

    @property
    def attestation_hex(self) -> str:
        return to_hex(self.attestation.leaf if self.attestation else None)

    def _report(self, success: bool, message: str) -> WorkflowStatus:
        self.status = WorkflowStatus(success=success, message=message)
        if success:
            logger.debug(message)
        else:
            logger.warning(message)
        return self.status

    def generate(self, use_strongbox_if_available: bool = True) -> WorkflowStatus:
        """Generate (or regenerate) the session's key pair."""
        try:
            handle = self.workflow.generate_key_pair(self.alias, use_strongbox_if_available)
        except SigningDemoError as e:
            return self._report(False, f"Error generating keys: {e}")

        self.key_pair = handle
        self.signature = None
        self.attestation = None
        self.state = WorkflowState.KEYED
        return self._report(True, "New EC P256 key pair generated!")

    def sign(self) -> WorkflowStatus:
        """Sign the session message with the key stored under the alias."""
        try:
            handle = self.workflow.load_key_pair(self.alias)
            signature = self.workflow.sign(handle, self.message)
        except KeyNotFoundError:
            return self._report(False, "Error: Key not found. Generate keys first.")
        except SigningDemoError as e:
            return self._report(False, f"Error signing data: {e}")

        if self.key_pair is None or self.key_pair.key_id != handle.key_id:
            self.attestation = None
        self.key_pair = handle
        self.signature = signature
        self.state = WorkflowState.SIGNED
        return self._report(True, "Message signed successfully!")

    def verify(self) -> WorkflowStatus:
        """Verify the session signature against the session public key."""
        public_key = self.key_pair.public_key if self.key_pair else None
        try:
            verified = self.workflow.verify(public_key, self.message, self.signature)
        except SigningDemoError as e:
            return self._report(False, f"Error verifying signature: {e}")

        if not verified:
            return self._report(False, VERIFIED_FALSE)
        self.state = WorkflowState.VERIFIED
        return self._report(True, VERIFIED_TRUE)

    def attest(self) -> WorkflowStatus:
        """Retrieve the attestation chain for the session key."""
        try:
            chain = self.workflow.attest(self.alias)
        except KeyNotFoundError:
            return self._report(False, "Error: Public key not found. Generate keys first.")
        except SigningDemoError as e:
            return self._report(False, f"Error attesting key: {e}")

        self.attestation = chain
        if self.state == WorkflowState.KEYED:
            self.state = WorkflowState.ATTESTED
        return self._report(True, f"Attestation type: {chain.leaf_type}")
