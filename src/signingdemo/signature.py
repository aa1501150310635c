"""Signature engine for SHA256withECDSA.

Signing routes through the key store that owns the private key, since the
private key never leaves it. Verification needs only the public key and is
done locally with the ``cryptography`` library.

Verification distinguishes malformed input from a wrong signature: bytes
that do not decode as a public key or as a DER ECDSA signature raise
:class:`~signingdemo.errors.VerificationDecodeError`, while a well-formed
signature that does not match returns False.
"""

import logging
from enum import StrEnum

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from signingdemo.errors import (
    KeyNotFoundError,
    MissingInputError,
    SigningDemoError,
    SigningError,
    VerificationDecodeError,
)
from signingdemo.keystore import KeyStore
from signingdemo.models import Digest, KeyPairHandle

logger = logging.getLogger(__name__)


class SignatureAlgorithm(StrEnum):
    """Signature algorithm identifiers.

    Attributes:
        SHA256_WITH_ECDSA: ECDSA over a SHA-256 digest
    """

    SHA256_WITH_ECDSA = "SHA256withECDSA"


_ALGORITHM_DIGESTS: dict[SignatureAlgorithm, Digest] = {
    SignatureAlgorithm.SHA256_WITH_ECDSA: Digest.SHA256,
}

_HASHES: dict[Digest, type[hashes.HashAlgorithm]] = {
    Digest.SHA256: hashes.SHA256,
}


class SignatureEngine:
    """Signs through a key store and verifies with public keys."""

    def __init__(self, key_store: KeyStore) -> None:
        self._key_store = key_store

    def sign(self, handle: KeyPairHandle, algorithm: SignatureAlgorithm, message: bytes) -> bytes:
        """Sign ``message`` with the key behind ``handle``.

        Args:
            handle: Handle to the signing key
            algorithm: Signature algorithm
            message: Message bytes

        Returns:
            DER-encoded signature

        Raises:
            KeyNotFoundError: If the handle no longer refers to a stored key
            SigningError: If the algorithm is unsupported or the store fails
        """
        if algorithm not in _ALGORITHM_DIGESTS:
            raise SigningError(f"Unsupported signature algorithm: {algorithm}")

        try:
            return self._key_store.sign(handle, _ALGORITHM_DIGESTS[algorithm], message)
        except (KeyNotFoundError, SigningError):
            raise
        except (SigningDemoError, ValueError, TypeError) as e:
            raise SigningError(f"Signing with {handle.alias} failed: {e}") from e

    def verify(
        self,
        public_key: bytes | None,
        algorithm: SignatureAlgorithm,
        message: bytes,
        signature: bytes | None,
    ) -> bool:
        """Verify ``signature`` over ``message`` against ``public_key``.

        Args:
            public_key: DER-encoded SubjectPublicKeyInfo
            algorithm: Signature algorithm used to sign
            message: Message bytes that were signed
            signature: DER-encoded signature

        Returns:
            True if the signature is valid, False otherwise

        Raises:
            MissingInputError: If the public key or signature is absent
            VerificationDecodeError: If the public key or signature is malformed
        """
        if not public_key:
            raise MissingInputError("Public key not found")
        if not signature:
            raise MissingInputError("Signature not found")
        if algorithm not in _ALGORITHM_DIGESTS:
            raise VerificationDecodeError(f"Unsupported signature algorithm: {algorithm}")

        try:
            key = serialization.load_der_public_key(public_key)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise VerificationDecodeError(f"Malformed public key: {e}") from e
        if not isinstance(key, ec.EllipticCurvePublicKey):
            raise VerificationDecodeError("Public key is not an EC key")

        try:
            decode_dss_signature(signature)
        except ValueError as e:
            raise VerificationDecodeError(f"Malformed signature encoding: {e}") from e

        hash_cls = _HASHES[_ALGORITHM_DIGESTS[algorithm]]
        try:
            key.verify(signature, message, ec.ECDSA(hash_cls()))
        except InvalidSignature:
            logger.debug("Signature verification failed")
            return False

        logger.debug("Signature verified successfully")
        return True
