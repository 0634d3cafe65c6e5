"""
Custom exceptions for Aegis.

Every error aborts processing of the current message only. DecryptError
deliberately covers both key-unwrap and authentication-tag failures.
"""


class AegisException(Exception):
    """Base exception for Aegis errors."""

    prefix = "Aegis error."

    def __init__(self, detail: str = ""):
        self.detail = detail
        message = f"{self.prefix} {detail}".strip()
        super().__init__(message)


class KeyGenerationError(AegisException):
    """Keypair generation failed."""
    prefix = "Key generation failed."


class KeychainError(AegisException):
    """Key storage backend malfunction."""
    prefix = "Keychain operation failed."


class SignError(AegisException):
    """Signing failed."""
    prefix = "Signing failed."


class VerifyError(AegisException):
    """Signature verification failed."""
    prefix = "Signature verification failed."


class EncryptError(AegisException):
    """Encryption failed."""
    prefix = "Encryption failed."


class DecryptError(AegisException):
    """Decryption failed (wrong recipient, corrupted or tampered data)."""
    prefix = "Decryption failed."


class BadJSON(AegisException):
    """Envelope could not be parsed."""
    prefix = "Invalid JSON format."


class BadPEM(AegisException):
    """PEM key or certificate could not be parsed."""
    prefix = "Invalid PEM key format."


class OperationCancelled(AegisException):
    """The surrounding operation was cancelled by the caller."""
    prefix = "Operation cancelled."
