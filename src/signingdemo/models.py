"""Data models shared by the key store, signature engine and attestation code."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

ALIAS_PATTERN = r"^[A-Za-z0-9._-]{1,64}$"


class KeyAlgorithm(StrEnum):
    """Asymmetric key algorithms a key store can generate.

    Attributes:
        EC_P256: ECDSA key pair on the NIST P-256 curve
    """

    EC_P256 = "ec_p256"


class KeyPurpose(StrEnum):
    """Operations a generated key may be used for."""

    SIGN = "sign"
    VERIFY = "verify"


class Digest(StrEnum):
    """Digest algorithms a key may be bound to."""

    SHA256 = "sha256"


class SecurityLevel(StrEnum):
    """Where the private key material lives.

    Attributes:
        SOFTWARE: Key material held by a software key store
        TRUSTED_ENVIRONMENT: Key material held in a trusted execution environment
        STRONGBOX: Key material held in a dedicated hardware security module
    """

    SOFTWARE = "software"
    TRUSTED_ENVIRONMENT = "trusted_environment"
    STRONGBOX = "strongbox"


class KeyOrigin(StrEnum):
    """How the key came to exist in the key store."""

    GENERATED = "generated"


class KeyGenSpec(BaseModel):
    """Parameters for generating a key pair inside a key store.

    Attributes:
        alias: Name the key pair is stored under
        algorithm: Key algorithm (curve)
        purposes: Operations the key is authorized for
        digests: Digests the key is bound to
        strongbox_backed: Request StrongBox (hardware security module) backing
        attestation_challenge: Random bytes embedded in the attestation certificate
        user_authentication_required: Key use requires user authentication
        user_presence_required: Key use requires a test of user presence
        user_confirmation_required: Key use requires explicit user confirmation
        unlocked_device_required: Key use requires an unlocked device
    """

    alias: str = Field(pattern=ALIAS_PATTERN)
    algorithm: KeyAlgorithm = KeyAlgorithm.EC_P256
    purposes: list[KeyPurpose] = Field(
        default_factory=lambda: [KeyPurpose.SIGN, KeyPurpose.VERIFY]
    )
    digests: list[Digest] = Field(default_factory=lambda: [Digest.SHA256])
    strongbox_backed: bool = False
    attestation_challenge: bytes = b""
    user_authentication_required: bool = False
    user_presence_required: bool = False
    user_confirmation_required: bool = False
    unlocked_device_required: bool = True


class KeyPairHandle(BaseModel):
    """Handle to a key pair stored in a key store.

    Carries the public key bytes only. The private key is reachable solely
    through the key store that issued the handle, and only while the
    generation identified by ``key_id`` is still stored under ``alias``.

    Attributes:
        alias: Alias the key pair is stored under
        key_id: Identifier of this particular generation of the alias
        algorithm: Key algorithm
        public_key: DER-encoded SubjectPublicKeyInfo
        security_level: Where the private key lives
        created_at: When the key pair was generated
    """

    alias: str
    key_id: str
    algorithm: KeyAlgorithm = KeyAlgorithm.EC_P256
    public_key: bytes
    security_level: SecurityLevel = SecurityLevel.SOFTWARE
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()


class KeyInfo(BaseModel):
    """Properties of a stored key as reported by the key store."""

    alias: str
    algorithm: KeyAlgorithm
    origin: KeyOrigin = KeyOrigin.GENERATED
    security_level: SecurityLevel
    purposes: list[KeyPurpose]
    digests: list[Digest]
    user_authentication_required: bool = False
    user_presence_required: bool = False
    user_confirmation_required: bool = False
    unlocked_device_required: bool = True

    @property
    def is_strongbox(self) -> bool:
        return self.security_level == SecurityLevel.STRONGBOX


class KeyDescription(BaseModel):
    """Key properties embedded in the leaf attestation certificate.

    Attributes:
        challenge: Hex-encoded attestation challenge from key generation
        security_level: Where the private key lives
        origin: How the key came to exist
        purposes: Operations the key is authorized for
        digests: Digests the key is bound to
        user_authentication_required: Key use requires user authentication
        user_presence_required: Key use requires a test of user presence
        user_confirmation_required: Key use requires explicit user confirmation
        unlocked_device_required: Key use requires an unlocked device
    """

    challenge: str
    security_level: SecurityLevel
    origin: KeyOrigin = KeyOrigin.GENERATED
    purposes: list[KeyPurpose] = Field(default_factory=list)
    digests: list[Digest] = Field(default_factory=list)
    user_authentication_required: bool = False
    user_presence_required: bool = False
    user_confirmation_required: bool = False
    unlocked_device_required: bool = True
