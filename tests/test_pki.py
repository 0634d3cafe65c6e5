"""
Public key parsing and identity fingerprint tests
"""

import base64
import hashlib

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from aegis.common.exceptions import BadPEM
from aegis.crypto.der import pem_encode
from aegis.crypto.pki import (
    PublicKeyRecord,
    fingerprint,
    get_certificate_info,
    issue_self_signed_certificate,
    parse_public_key_pem,
    public_key_der,
    public_key_fingerprint,
    public_key_pem,
)


def _spki_pem(key):
    return key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    )


def _pkcs1_pem(key):
    return key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.PKCS1
    )


def _cert_pem(key):
    cert = issue_self_signed_certificate(key, "alice")
    return cert.public_bytes(serialization.Encoding.PEM)


# ── Label dispatch ────────────────────────────────────────────────────────────
def test_all_labels_yield_same_key(alice_key):
    expected = public_key_der(alice_key.public_key())

    from_spki = parse_public_key_pem(_spki_pem(alice_key))
    from_pkcs1 = parse_public_key_pem(_pkcs1_pem(alice_key))
    from_cert = parse_public_key_pem(_cert_pem(alice_key))

    assert public_key_der(from_spki) == expected
    assert public_key_der(from_pkcs1) == expected
    assert public_key_der(from_cert) == expected


def test_parse_accepts_str_and_crlf(alice_key):
    pem = _pkcs1_pem(alice_key).decode().replace("\n", "\r\n")
    key = parse_public_key_pem(pem)
    assert public_key_fingerprint(key) == public_key_fingerprint(alice_key.public_key())


def test_public_key_pem_roundtrip(bob_key):
    pem = public_key_pem(bob_key.public_key())
    assert pem.startswith("-----BEGIN PUBLIC KEY-----\n")
    assert public_key_der(parse_public_key_pem(pem)) == public_key_der(bob_key.public_key())


def test_unknown_label_rejected(alice_key):
    der = public_key_der(alice_key.public_key())
    with pytest.raises(BadPEM):
        parse_public_key_pem(pem_encode(der, "EC PUBLIC KEY"))


def test_private_key_pem_rejected(alice_key):
    pem = alice_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    with pytest.raises(BadPEM):
        parse_public_key_pem(pem)


def test_non_rsa_key_rejected():
    ec_key = ec.generate_private_key(ec.SECP256R1())
    with pytest.raises(BadPEM):
        parse_public_key_pem(_spki_pem(ec_key))


def test_rsa_public_key_label_with_spki_body_rejected(alice_key):
    der = public_key_der(alice_key.public_key())
    with pytest.raises(BadPEM):
        parse_public_key_pem(pem_encode(der, "RSA PUBLIC KEY"))


def test_garbage_body_rejected():
    with pytest.raises(BadPEM):
        parse_public_key_pem(pem_encode(b"\x30\x03\x02\x01\x01", "PUBLIC KEY"))
    with pytest.raises(BadPEM):
        parse_public_key_pem(pem_encode(b"not a certificate", "CERTIFICATE"))


def test_no_markers_rejected():
    with pytest.raises(BadPEM):
        parse_public_key_pem("just some text")


# ── Fingerprints ──────────────────────────────────────────────────────────────
def test_fingerprint_is_base64_sha256():
    der = b"\x30\x00"
    expected = base64.b64encode(hashlib.sha256(der).digest()).decode()
    assert fingerprint(der) == expected
    assert len(fingerprint(der)) == 44


def test_fingerprint_deterministic_and_distinct(alice_key, bob_key):
    a1 = public_key_fingerprint(alice_key.public_key())
    a2 = public_key_fingerprint(parse_public_key_pem(_pkcs1_pem(alice_key)))
    b = public_key_fingerprint(bob_key.public_key())
    assert a1 == a2
    assert a1 != b


def test_public_key_record(alice_key):
    record = PublicKeyRecord.from_public_key(alice_key.public_key())
    assert record.raw_der == public_key_der(alice_key.public_key())
    assert record.fingerprint == fingerprint(record.raw_der)
    assert public_key_der(parse_public_key_pem(record.pem)) == record.raw_der


# ── Certificates ──────────────────────────────────────────────────────────────
def test_certificate_info_uses_key_fingerprint(alice_key):
    cert = issue_self_signed_certificate(alice_key, "alice", validity_days=30)
    info = get_certificate_info(cert)
    assert info["common_name"] == "alice"
    assert info["key_fingerprint"] == public_key_fingerprint(alice_key.public_key())
    assert (info["not_valid_after"] - info["not_valid_before"]).days == 30
