"""
Utility functions for Aegis.
"""

import base64
import binascii
import hashlib


def sha256_digest(data: bytes) -> bytes:
    """
    Compute raw SHA-256 digest.

    Args:
        data: Data to hash

    Returns:
        32-byte digest
    """
    return hashlib.sha256(data).digest()


def b64encode(data: bytes) -> str:
    """
    Base64 encode bytes to string (standard alphabet, padded).

    Args:
        data: Bytes to encode

    Returns:
        Base64-encoded string
    """
    return base64.b64encode(data).decode('ascii')


def b64decode(data: str) -> bytes:
    """
    Strictly base64 decode a string.

    Args:
        data: Base64-encoded string

    Returns:
        Decoded bytes

    Raises:
        ValueError: If the input is not valid base64
    """
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64: {e}")


# Test function
if __name__ == "__main__":
    print("[*] Testing utility functions")

    data = b"Hello, Aegis!"
    print(f"\n[1] SHA-256('{data.decode()}'): {sha256_digest(data).hex()}")

    encoded = b64encode(data)
    decoded = b64decode(encoded)
    print(f"\n[2] Base64 encode/decode:")
    print(f"    Original: {data}")
    print(f"    Encoded:  {encoded}")
    print(f"    Decoded:  {decoded}")
    assert data == decoded, "Base64 encode/decode failed!"

    print("\n[✓] Utility functions test passed!")
