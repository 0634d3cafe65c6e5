"""
Cryptographic primitives for Aegis.

This package provides implementations of:
- ASN.1 DER / PEM marshaling of RSA public keys
- AES-256-GCM sealing
- RSA-OAEP-256 key wrapping
- RSA-PSS-256 signatures
- The hybrid envelope pipeline and identity fingerprints
"""

from .der import encode_length, wrap_pkcs1_as_spki, pem_encode, pem_decode
from .pki import fingerprint, parse_public_key_pem, public_key_der, public_key_pem, PublicKeyRecord
from .sign import sign_data, verify_signature
from .hybrid import encrypt_envelope, decrypt_envelope, verify_envelope, DecryptResult

__all__ = [
    'encode_length',
    'wrap_pkcs1_as_spki',
    'pem_encode',
    'pem_decode',
    'fingerprint',
    'parse_public_key_pem',
    'public_key_der',
    'public_key_pem',
    'PublicKeyRecord',
    'sign_data',
    'verify_signature',
    'encrypt_envelope',
    'decrypt_envelope',
    'verify_envelope',
    'DecryptResult',
]
