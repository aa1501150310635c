"""Key attestation: issuing and inspecting certificate chains.

A key store proves where a key came from by returning a certificate chain
for it. The chain is ordered leaf first. The leaf certificate's subject
public key is the attested key, and the leaf carries a key description
extension recording the attestation challenge supplied at generation time
together with the key's security level, origin, purposes and digests.

:class:`AttestationAuthority` is the software stand-in for the platform's
attestation service: a self-signed root CA and an intermediate attestation
CA, both EC P-256, which sign a fresh leaf for every generated key.
:class:`AttestationChain` is what callers receive; it decodes the chain and
can check it for external verification.

Example:
    >>> from signingdemo.attestation import AttestationAuthority
    >>>
    >>> authority = AttestationAuthority.create()
    >>> chain = authority.issue("my_ecdsa_key", public_key, description)
    >>> chain.verify_chain(trusted_root=authority.root_certificate)
    True
"""

import logging
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from pydantic import BaseModel, Field, ValidationError

from signingdemo.errors import AttestationError
from signingdemo.models import KeyDescription
from signingdemo.utils import write_private_file

logger = logging.getLogger(__name__)

# OID under the UUID arc (ITU-T X.667) for the key description extension
KEY_DESCRIPTION_OID = x509.ObjectIdentifier(
    f"2.25.{uuid.UUID('5f1c9a3e-8d2b-4c7a-b6e1-0a9d3f4e2c18').int}"
)

CERTIFICATE_TYPE = "X.509"

_CA_VALIDITY = timedelta(days=365 * 20)
_LEAF_VALIDITY = timedelta(days=365 * 10)

_ROOT_KEY_FILE = "root.key.pem"
_ROOT_CERT_FILE = "root.crt"
_INTERMEDIATE_KEY_FILE = "intermediate.key.pem"
_INTERMEDIATE_CERT_FILE = "intermediate.crt"


class AttestationChain(BaseModel):
    """Certificate chain attesting a stored key, leaf first.

    Attributes:
        alias: Alias of the attested key
        certificates: DER-encoded certificates, leaf first
        retrieved_at: When the chain was retrieved from the key store
    """

    alias: str
    certificates: list[bytes]
    retrieved_at: datetime = Field(default_factory=datetime.utcnow)

    @classmethod
    def from_der_list(cls, alias: str, certificates: list[bytes]) -> "AttestationChain":
        """Build a chain from raw DER certificates, checking each decodes.

        Args:
            alias: Alias of the attested key
            certificates: DER-encoded certificates, leaf first

        Returns:
            Decoded and validated chain

        Raises:
            AttestationError: If the chain is empty or a certificate is malformed
        """
        chain = cls(alias=alias, certificates=list(certificates))
        chain.parse()
        return chain

    @property
    def leaf(self) -> bytes:
        if not self.certificates:
            raise AttestationError(f"Empty attestation chain for {self.alias}")
        return self.certificates[0]

    @property
    def leaf_type(self) -> str:
        return CERTIFICATE_TYPE

    def parse(self) -> list[x509.Certificate]:
        """Decode every certificate in the chain.

        Returns:
            Decoded certificates, leaf first

        Raises:
            AttestationError: If the chain is empty or a certificate is malformed
        """
        if not self.certificates:
            raise AttestationError(f"Empty attestation chain for {self.alias}")

        decoded: list[x509.Certificate] = []
        for index, der in enumerate(self.certificates):
            try:
                decoded.append(x509.load_der_x509_certificate(der))
            except ValueError as e:
                raise AttestationError(
                    f"Malformed certificate {index} in chain for {self.alias}: {e}"
                ) from e
        return decoded

    def leaf_public_key(self) -> bytes:
        """Return the leaf's subject public key as DER SubjectPublicKeyInfo."""
        leaf = self.parse()[0]
        return leaf.public_key().public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def key_description(self) -> KeyDescription | None:
        """Return the key description embedded in the leaf, if present.

        Raises:
            AttestationError: If the extension is present but cannot be decoded
        """
        leaf = self.parse()[0]
        try:
            ext = leaf.extensions.get_extension_for_oid(KEY_DESCRIPTION_OID)
        except x509.ExtensionNotFound:
            return None

        try:
            return KeyDescription.model_validate_json(ext.value.value)
        except ValidationError as e:
            raise AttestationError(f"Malformed key description for {self.alias}: {e}") from e

    @property
    def challenge(self) -> bytes | None:
        description = self.key_description()
        if description is None:
            return None
        return bytes.fromhex(description.challenge)

    def verify_chain(self, trusted_root: bytes | None = None) -> bool:
        """Check that each certificate is directly issued by the next one.

        The last certificate must be self-signed. When ``trusted_root`` is
        given, the last certificate must also be byte-identical to it.

        Args:
            trusted_root: Optional DER-encoded root certificate to anchor to

        Returns:
            True if the chain links up, False otherwise
        """
        certs = self.parse()
        pairs = list(zip(certs, certs[1:])) + [(certs[-1], certs[-1])]
        for index, (subject, issuer) in enumerate(pairs):
            try:
                subject.verify_directly_issued_by(issuer)
            except (ValueError, TypeError, InvalidSignature) as e:
                logger.warning(f"Certificate {index} in chain for {self.alias} not verified: {e}")
                return False

        if trusted_root is not None and self.certificates[-1] != trusted_root:
            logger.warning(f"Chain for {self.alias} does not end in the trusted root")
            return False

        logger.debug(f"Attestation chain for {self.alias} verified ({len(certs)} certificates)")
        return True

    def describe(self) -> list[dict[str, Any]]:
        """Summarize each certificate for display."""
        return [
            {
                "subject": cert.subject.rfc4514_string(),
                "issuer": cert.issuer.rfc4514_string(),
                "serial_number": hex(cert.serial_number),
                "not_before": cert.not_valid_before_utc.isoformat(),
                "not_after": cert.not_valid_after_utc.isoformat(),
            }
            for cert in self.parse()
        ]


def _name(common_name: str) -> x509.Name:
    return x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "signingdemo"),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )


def _der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.DER)


class AttestationAuthority:
    """Software attestation service issuing leaf-first certificate chains.

    Holds a root CA and an intermediate attestation CA. Each call to
    :meth:`issue` signs a new leaf certificate for the given public key with
    the intermediate.
    """

    def __init__(
        self,
        root_key: ec.EllipticCurvePrivateKey,
        root_cert: x509.Certificate,
        intermediate_key: ec.EllipticCurvePrivateKey,
        intermediate_cert: x509.Certificate,
    ) -> None:
        self._root_key = root_key
        self._root_cert = root_cert
        self._intermediate_key = intermediate_key
        self._intermediate_cert = intermediate_cert

    @classmethod
    def create(cls, name: str = "signingdemo Software Attestation") -> "AttestationAuthority":
        """Create a fresh root and intermediate CA.

        Args:
            name: Common name prefix for the CA certificates

        Returns:
            New attestation authority
        """
        now = datetime.now(UTC)

        root_key = ec.generate_private_key(ec.SECP256R1())
        root_name = _name(f"{name} Root")
        root_cert = (
            x509.CertificateBuilder()
            .subject_name(root_name)
            .issuer_name(root_name)
            .public_key(root_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + _CA_VALIDITY)
            .add_extension(x509.BasicConstraints(ca=True, path_length=1), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=False,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .sign(root_key, hashes.SHA256())
        )

        intermediate_key = ec.generate_private_key(ec.SECP256R1())
        intermediate_cert = (
            x509.CertificateBuilder()
            .subject_name(_name(f"{name} Intermediate"))
            .issuer_name(root_name)
            .public_key(intermediate_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + _CA_VALIDITY)
            .add_extension(x509.BasicConstraints(ca=True, path_length=0), critical=True)
            .sign(root_key, hashes.SHA256())
        )

        logger.info("Created software attestation authority")
        return cls(root_key, root_cert, intermediate_key, intermediate_cert)

    @property
    def root_certificate(self) -> bytes:
        return _der(self._root_cert)

    def issue(
        self,
        alias: str,
        public_key: ec.EllipticCurvePublicKey,
        description: KeyDescription,
    ) -> list[bytes]:
        """Issue an attestation chain for a newly generated key.

        Args:
            alias: Alias the key is stored under (used as the leaf subject)
            public_key: Public key being attested
            description: Key properties to embed in the leaf

        Returns:
            DER-encoded certificates: leaf, intermediate, root
        """
        now = datetime.now(UTC)
        leaf = (
            x509.CertificateBuilder()
            .subject_name(_name(f"Key {alias}"))
            .issuer_name(self._intermediate_cert.subject)
            .public_key(public_key)
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + _LEAF_VALIDITY)
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(
                x509.UnrecognizedExtension(
                    KEY_DESCRIPTION_OID,
                    description.model_dump_json().encode(),
                ),
                critical=False,
            )
            .sign(self._intermediate_key, hashes.SHA256())
        )

        logger.debug(f"Issued attestation certificate for {alias}")
        return [_der(leaf), _der(self._intermediate_cert), _der(self._root_cert)]

    def save(self, directory: Path, passphrase: bytes | None = None) -> None:
        """Persist the CA keys and certificates to ``directory``.

        Private keys are written as PKCS#8 PEM, encrypted when a passphrase
        is given, with file mode 0600.
        """
        directory.mkdir(parents=True, exist_ok=True)
        encryption: serialization.KeySerializationEncryption = (
            serialization.BestAvailableEncryption(passphrase)
            if passphrase
            else serialization.NoEncryption()
        )

        for filename, key in (
            (_ROOT_KEY_FILE, self._root_key),
            (_INTERMEDIATE_KEY_FILE, self._intermediate_key),
        ):
            write_private_file(
                directory / filename,
                key.private_bytes(
                    serialization.Encoding.PEM,
                    serialization.PrivateFormat.PKCS8,
                    encryption,
                ),
            )

        (directory / _ROOT_CERT_FILE).write_bytes(
            self._root_cert.public_bytes(serialization.Encoding.PEM)
        )
        (directory / _INTERMEDIATE_CERT_FILE).write_bytes(
            self._intermediate_cert.public_bytes(serialization.Encoding.PEM)
        )

    @classmethod
    def load(cls, directory: Path, passphrase: bytes | None = None) -> "AttestationAuthority":
        """Load an authority previously written by :meth:`save`.

        Raises:
            AttestationError: If the files are missing or cannot be decoded
        """
        try:
            root_key = serialization.load_pem_private_key(
                (directory / _ROOT_KEY_FILE).read_bytes(), passphrase
            )
            intermediate_key = serialization.load_pem_private_key(
                (directory / _INTERMEDIATE_KEY_FILE).read_bytes(), passphrase
            )
            root_cert = x509.load_pem_x509_certificate((directory / _ROOT_CERT_FILE).read_bytes())
            intermediate_cert = x509.load_pem_x509_certificate(
                (directory / _INTERMEDIATE_CERT_FILE).read_bytes()
            )
        except (OSError, ValueError, TypeError) as e:
            raise AttestationError(f"Failed to load attestation authority: {e}") from e

        if not isinstance(root_key, ec.EllipticCurvePrivateKey) or not isinstance(
            intermediate_key, ec.EllipticCurvePrivateKey
        ):
            raise AttestationError("Attestation authority keys are not EC keys")

        return cls(root_key, root_cert, intermediate_key, intermediate_cert)

    @staticmethod
    def exists(directory: Path) -> bool:
        return all(
            (directory / name).exists()
            for name in (
                _ROOT_KEY_FILE,
                _ROOT_CERT_FILE,
                _INTERMEDIATE_KEY_FILE,
                _INTERMEDIATE_CERT_FILE,
            )
        )
