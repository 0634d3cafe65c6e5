"""
RSA-OAEP Key Wrapping

Wraps the per-message AES key for the recipient using RSA-OAEP with
SHA-256 for both the hash and MGF1.
"""

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from aegis.common.exceptions import DecryptError, EncryptError


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def wrap_key(key: bytes, recipient_public_key) -> bytes:
    """
    Encrypt a symmetric key for the recipient.

    Args:
        key: Symmetric key bytes
        recipient_public_key: Recipient's RSA public key

    Returns:
        OAEP ciphertext

    Raises:
        EncryptError: If the key does not support RSA-OAEP-256
    """
    if not isinstance(recipient_public_key, rsa.RSAPublicKey):
        raise EncryptError("Recipient key does not support RSA-OAEP-256.")
    try:
        return recipient_public_key.encrypt(key, _oaep())
    except ValueError as e:
        raise EncryptError(str(e)) from e


def unwrap_key(wrapped: bytes, recipient_private_key) -> bytes:
    """
    Recover a symmetric key with the recipient's private key.

    Args:
        wrapped: OAEP ciphertext
        recipient_private_key: Recipient's RSA private key

    Returns:
        Symmetric key bytes

    Raises:
        DecryptError: Wrong recipient, corrupted blob or unsupported key
    """
    if not isinstance(recipient_private_key, rsa.RSAPrivateKey):
        raise DecryptError("Recipient key does not support RSA-OAEP-256.")
    try:
        return recipient_private_key.decrypt(wrapped, _oaep())
    except ValueError as e:
        raise DecryptError("Key unwrap failed.") from e
