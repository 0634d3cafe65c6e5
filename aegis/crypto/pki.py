"""
Public key marshaling and identity fingerprints (PKI)

Implements:
- PEM public key parsing for CERTIFICATE, PUBLIC KEY and RSA PUBLIC KEY labels
- Canonical SubjectPublicKeyInfo export
- SHA-256 identity fingerprints (base64, untruncated)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from aegis.common.exceptions import BadPEM
from aegis.common.utils import b64encode, sha256_digest
from aegis.crypto.der import (
    find_pem_label,
    is_rsa_public_key_pkcs1,
    pem_decode,
    pem_encode,
    wrap_pkcs1_as_spki,
)

LABEL_CERTIFICATE = "CERTIFICATE"
LABEL_PUBLIC_KEY = "PUBLIC KEY"
LABEL_RSA_PUBLIC_KEY = "RSA PUBLIC KEY"


def fingerprint(der: bytes) -> str:
    """
    Compute the identity fingerprint of a public key.

    Args:
        der: Canonical SubjectPublicKeyInfo DER bytes

    Returns:
        Base64 (standard alphabet) of SHA-256(der)
    """
    return b64encode(sha256_digest(der))


def public_key_der(public_key) -> bytes:
    """Export a public key as SubjectPublicKeyInfo DER."""
    return public_key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def public_key_pem(public_key) -> str:
    """Export a public key as a PUBLIC KEY PEM block."""
    return pem_encode(public_key_der(public_key), LABEL_PUBLIC_KEY)


def public_key_fingerprint(public_key) -> str:
    return fingerprint(public_key_der(public_key))


@dataclass(frozen=True)
class PublicKeyRecord:
    """Shareable view of a public key."""
    raw_der: bytes
    pem: str
    fingerprint: str

    @classmethod
    def from_public_key(cls, public_key) -> "PublicKeyRecord":
        der = public_key_der(public_key)
        return cls(raw_der=der, pem=pem_encode(der, LABEL_PUBLIC_KEY), fingerprint=fingerprint(der))


def _load_spki(spki_der: bytes):
    try:
        key = serialization.load_der_public_key(spki_der)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise BadPEM(f"Unreadable SubjectPublicKeyInfo: {e}") from e
    return key


def parse_public_key_pem(pem: Union[str, bytes]) -> rsa.RSAPublicKey:
    """
    Parse an RSA public key from PEM.

    Dispatches on the label found:
    - CERTIFICATE: extract the certificate's embedded SubjectPublicKeyInfo
    - PUBLIC KEY: body is SubjectPublicKeyInfo DER
    - RSA PUBLIC KEY: body is PKCS#1 DER, wrapped into SubjectPublicKeyInfo

    Args:
        pem: PEM text or bytes

    Returns:
        RSA public key object

    Raises:
        BadPEM: Unknown label, undecodable body or non-RSA key
    """
    label = find_pem_label(pem)

    if label == LABEL_CERTIFICATE:
        cert_der = pem_decode(pem, LABEL_CERTIFICATE)
        try:
            cert = x509.load_der_x509_certificate(cert_der)
            key = cert.public_key()
        except (ValueError, UnsupportedAlgorithm) as e:
            raise BadPEM(f"Unreadable certificate: {e}") from e

    elif label == LABEL_PUBLIC_KEY:
        key = _load_spki(pem_decode(pem, LABEL_PUBLIC_KEY))

    elif label == LABEL_RSA_PUBLIC_KEY:
        pkcs1_der = pem_decode(pem, LABEL_RSA_PUBLIC_KEY)
        if not is_rsa_public_key_pkcs1(pkcs1_der):
            raise BadPEM("RSA PUBLIC KEY body is not a PKCS#1 RSAPublicKey.")
        key = _load_spki(wrap_pkcs1_as_spki(pkcs1_der))

    else:
        raise BadPEM(f"Unsupported PEM label '{label}'.")

    if not isinstance(key, rsa.RSAPublicKey):
        raise BadPEM("Only RSA public keys are supported.")
    return key


def get_common_name(cert: x509.Certificate) -> str:
    try:
        return cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value
    except IndexError:
        return "UNKNOWN"


def get_certificate_info(cert: x509.Certificate) -> dict:
    """
    Extract certificate information for display.

    The fingerprint is that of the embedded public key, so it matches the
    identity fingerprint shown for the same key elsewhere.

    Args:
        cert: Certificate object

    Returns:
        Dictionary with certificate details
    """
    return {
        "subject": cert.subject.rfc4514_string(),
        "common_name": get_common_name(cert),
        "serial_number": cert.serial_number,
        "not_valid_before": cert.not_valid_before_utc,
        "not_valid_after": cert.not_valid_after_utc,
        "key_fingerprint": public_key_fingerprint(cert.public_key()),
    }


def issue_self_signed_certificate(
    private_key,
    common_name: str,
    organization: str = "Aegis",
    validity_days: int = 365,
) -> x509.Certificate:
    """
    Issue a self-signed certificate carrying an identity's public key.

    The certificate only packages the key for the CERTIFICATE PEM label;
    trust still comes from comparing fingerprints out of band.

    Args:
        private_key: Identity RSA private key
        common_name: Common Name (CN) for subject and issuer
        organization: Organization name
        validity_days: Certificate validity period in days

    Returns:
        Certificate object
    """
    name = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=validity_days))
        .add_extension(
            x509.BasicConstraints(ca=False, path_length=None),
            critical=True,
        )
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                key_encipherment=True,
                content_commitment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
            critical=False,
        )
        .sign(private_key, hashes.SHA256())
    )
