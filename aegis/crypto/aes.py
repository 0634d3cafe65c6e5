"""
AES-256-GCM Authenticated Encryption

Each message is sealed under a fresh 256-bit key and a fresh 96-bit nonce.
The sealed box uses the combined layout:

    nonce(12) || ciphertext || tag(16)
"""

import os
from typing import Tuple
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from aegis.common.exceptions import DecryptError, EncryptError

KEY_SIZE = 32     # 256-bit key
NONCE_SIZE = 12   # 96-bit nonce (GCM standard)
TAG_SIZE = 16     # 128-bit tag


def generate_key() -> bytes:
    """
    Generate a random AES-256 key.

    Returns:
        32 random bytes
    """
    return AESGCM.generate_key(bit_length=KEY_SIZE * 8)


def seal(plaintext: bytes, key: bytes) -> Tuple[bytes, bytes]:
    """
    Encrypt and authenticate plaintext.

    Args:
        plaintext: Data to encrypt (may be empty)
        key: 32-byte AES key

    Returns:
        Tuple of (nonce, combined)
        nonce: the 12-byte nonce used
        combined: nonce || ciphertext || tag

    Raises:
        EncryptError: If the key has the wrong length
    """
    if len(key) != KEY_SIZE:
        raise EncryptError(f"AES-256 requires {KEY_SIZE}-byte key, got {len(key)} bytes")

    nonce = os.urandom(NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, bytes(plaintext), None)
    return nonce, nonce + ct


def open_sealed(combined: bytes, key: bytes) -> bytes:
    """
    Verify the tag and decrypt a combined sealed box.

    Args:
        combined: nonce || ciphertext || tag
        key: 32-byte AES key

    Returns:
        Plaintext bytes

    Raises:
        DecryptError: On bad key length, short input or tag mismatch
    """
    if len(key) != KEY_SIZE:
        raise DecryptError("Unwrapped key has the wrong length.")
    if len(combined) < NONCE_SIZE + TAG_SIZE:
        raise DecryptError("Sealed box too short.")

    nonce = combined[:NONCE_SIZE]
    try:
        return AESGCM(key).decrypt(nonce, combined[NONCE_SIZE:], None)
    except InvalidTag as e:
        raise DecryptError("Authentication failed.") from e


# Test function for development
if __name__ == "__main__":
    test_key = generate_key()
    test_message = b"Hello, Aegis!"

    print(f"Original: {test_message}")

    nonce, combined = seal(test_message, test_key)
    print(f"Nonce: {nonce.hex()}")
    print(f"Sealed: {combined.hex()}")

    opened = open_sealed(combined, test_key)
    print(f"Opened: {opened}")

    assert opened == test_message, "Seal/Open test failed!"
    print("\n[✓] AES-GCM seal/open test passed!")
