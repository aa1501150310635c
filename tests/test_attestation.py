"""Tests for attestation chain issuance and inspection."""

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec

from signingdemo.attestation import (
    CERTIFICATE_TYPE,
    KEY_DESCRIPTION_OID,
    AttestationAuthority,
    AttestationChain,
)
from signingdemo.errors import AttestationError
from signingdemo.models import KeyDescription, SecurityLevel


@pytest.fixture(scope="module")
def authority() -> AttestationAuthority:
    return AttestationAuthority.create()


@pytest.fixture
def description() -> KeyDescription:
    return KeyDescription(challenge=(b"\x07" * 20).hex(), security_level=SecurityLevel.SOFTWARE)


@pytest.fixture
def issued(authority, description):
    key = ec.generate_private_key(ec.SECP256R1())
    certificates = authority.issue("k1", key.public_key(), description)
    return key, AttestationChain.from_der_list("k1", certificates)


def test_issue_chain_is_leaf_first(issued, authority):
    """Test the chain runs leaf, intermediate, root."""
    _, chain = issued
    certs = chain.parse()
    assert len(certs) == 3
    assert "Key k1" in certs[0].subject.rfc4514_string()
    assert certs[0].issuer == certs[1].subject
    assert certs[1].issuer == certs[2].subject
    assert chain.certificates[-1] == authority.root_certificate


def test_leaf_type(issued):
    """Test the leaf certificate type is X.509."""
    _, chain = issued
    assert chain.leaf_type == CERTIFICATE_TYPE == "X.509"


def test_leaf_public_key_matches(issued):
    """Test the leaf's subject key is the attested key."""
    from cryptography.hazmat.primitives import serialization

    key, chain = issued
    expected = key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    assert chain.leaf_public_key() == expected


def test_key_description_roundtrip(issued, description):
    """Test the key description extension carries the challenge."""
    _, chain = issued
    assert chain.key_description() == description
    assert chain.challenge == b"\x07" * 20


def test_key_description_extension_not_critical(issued):
    """Test verifiers unaware of the extension can still accept the leaf."""
    _, chain = issued
    leaf = chain.parse()[0]
    ext = leaf.extensions.get_extension_for_oid(KEY_DESCRIPTION_OID)
    assert ext.critical is False


def test_verify_chain(issued, authority):
    """Test an issued chain verifies, anchored or not."""
    _, chain = issued
    assert chain.verify_chain() is True
    assert chain.verify_chain(trusted_root=authority.root_certificate) is True


def test_verify_chain_wrong_root(issued):
    """Test anchoring to another authority's root fails."""
    _, chain = issued
    other = AttestationAuthority.create()
    assert chain.verify_chain(trusted_root=other.root_certificate) is False


def test_verify_chain_broken_link(issued, description):
    """Test a leaf from one authority with another's CA certificates fails."""
    _, chain = issued
    other = AttestationAuthority.create()
    key = ec.generate_private_key(ec.SECP256R1())
    foreign = other.issue("k1", key.public_key(), description)
    spliced = AttestationChain(alias="k1", certificates=[foreign[0], *chain.certificates[1:]])
    assert spliced.verify_chain() is False


def test_empty_chain_raises():
    """Test an empty chain is an attestation error."""
    with pytest.raises(AttestationError, match="Empty"):
        AttestationChain.from_der_list("k1", [])


def test_malformed_certificate_raises(issued):
    """Test an undecodable certificate is an attestation error."""
    _, chain = issued
    with pytest.raises(AttestationError, match="Malformed certificate 1"):
        AttestationChain.from_der_list("k1", [chain.certificates[0], b"garbage"])


def test_describe(issued):
    """Test each certificate is summarized for display."""
    _, chain = issued
    summary = chain.describe()
    assert len(summary) == 3
    assert summary[0]["issuer"] == summary[1]["subject"]
    assert summary[0]["serial_number"].startswith("0x")


def test_chain_without_description():
    """Test a leaf with no key description extension returns None."""
    from datetime import UTC, datetime, timedelta

    from cryptography.hazmat.primitives import hashes, serialization
    from cryptography.x509.oid import NameOID

    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "plain")])
    now = datetime.now(UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    chain = AttestationChain.from_der_list(
        "plain", [cert.public_bytes(serialization.Encoding.DER)]
    )
    assert chain.key_description() is None
    assert chain.challenge is None
    assert chain.verify_chain() is True


def test_save_and_load(tmp_path, authority, description):
    """Test a saved authority issues chains under the same root."""
    authority.save(tmp_path, passphrase=b"pw")
    assert AttestationAuthority.exists(tmp_path)

    loaded = AttestationAuthority.load(tmp_path, passphrase=b"pw")
    assert loaded.root_certificate == authority.root_certificate

    key = ec.generate_private_key(ec.SECP256R1())
    chain = AttestationChain.from_der_list(
        "k1", loaded.issue("k1", key.public_key(), description)
    )
    assert chain.verify_chain(trusted_root=authority.root_certificate) is True


def test_load_wrong_passphrase_raises(tmp_path, authority):
    """Test loading with the wrong passphrase fails."""
    authority.save(tmp_path, passphrase=b"pw")
    with pytest.raises(AttestationError):
        AttestationAuthority.load(tmp_path, passphrase=b"wrong")


def test_load_missing_raises(tmp_path):
    """Test loading from an empty directory fails."""
    assert AttestationAuthority.exists(tmp_path) is False
    with pytest.raises(AttestationError):
        AttestationAuthority.load(tmp_path)
