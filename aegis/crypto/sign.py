"""
RSA-PSS Digital Signatures

Implements RSA signing and verification using SHA-256 with PSS padding
(MGF1-SHA256, 32-byte salt).
"""

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.exceptions import InvalidSignature

from aegis.common.exceptions import SignError

PSS_SALT_LENGTH = 32


def _pss() -> padding.PSS:
    return padding.PSS(
        mgf=padding.MGF1(hashes.SHA256()),
        salt_length=PSS_SALT_LENGTH,
    )


def sign_data(data: bytes, private_key) -> bytes:
    """
    Sign data using RSA private key.

    Args:
        data: Data to sign (bytes)
        private_key: RSA private key object

    Returns:
        Raw signature bytes

    Raises:
        SignError: If the key does not support RSA-PSS-256
    """
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise SignError("Sender key does not support RSA-PSS-256.")
    try:
        return private_key.sign(data, _pss(), hashes.SHA256())
    except ValueError as e:
        raise SignError(str(e)) from e


def verify_signature(data: bytes, signature: bytes, public_key) -> bool:
    """
    Verify RSA-PSS signature.

    Args:
        data: Original data (bytes)
        signature: Raw signature bytes
        public_key: RSA public key object

    Returns:
        True if signature is valid, False otherwise
    """
    if not isinstance(public_key, rsa.RSAPublicKey):
        return False
    try:
        public_key.verify(signature, data, _pss(), hashes.SHA256())
        return True
    except InvalidSignature:
        return False
    except Exception:
        return False


# Test function for development
if __name__ == "__main__":
    print("[*] Testing RSA-PSS Signature")

    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    public_key = private_key.public_key()

    test_data = b"Hello, Aegis!"
    signature = sign_data(test_data, private_key)
    print(f"\n[1] Signature: {signature.hex()[:64]}...")

    assert verify_signature(test_data, signature, public_key) is True
    assert verify_signature(b"Hello, Aegis?", signature, public_key) is False

    print("\n[✓] RSA-PSS signature test passed!")
