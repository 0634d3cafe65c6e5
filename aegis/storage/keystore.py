"""
Identity keypair storage

A KeyStore owns the lifecycle of one RSA-4096 private key per identity
tag: generate-if-absent, load, and public key derivation. The cipher
only ever sees the key objects it hands out.

Backends:
- MemoryKeyStore: process-local, for tests and throwaway sessions
- FileKeyStore: PKCS#8 PEM file (optionally passphrase-encrypted)
- MySQLKeyStore (aegis.storage.db): shared database row per tag
"""

import logging
import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Dict, Hashable, Optional
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from aegis.common import config
from aegis.common.exceptions import KeychainError, KeyGenerationError
from aegis.crypto.pki import PublicKeyRecord, public_key_der

logger = logging.getLogger(__name__)

_locks_guard = threading.Lock()
_locks: Dict[Hashable, threading.Lock] = {}


def _lock_for(scope: Hashable) -> threading.Lock:
    """One lock per storage location, shared by every store pointing at it."""
    with _locks_guard:
        return _locks.setdefault(scope, threading.Lock())


def serialize_private_key(private_key, passphrase: Optional[bytes] = None) -> bytes:
    """
    Serialize a private key as PKCS#8 PEM.

    Args:
        private_key: RSA private key
        passphrase: Optional passphrase for encryption at rest

    Returns:
        PEM bytes
    """
    encryption = (
        serialization.BestAvailableEncryption(passphrase)
        if passphrase else serialization.NoEncryption()
    )
    return private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        encryption,
    )


def deserialize_private_key(data: bytes, passphrase: Optional[bytes] = None):
    """
    Load a stored RSA private key.

    Raises:
        KeychainError: If the stored key is unreadable or not RSA
    """
    try:
        key = serialization.load_pem_private_key(data, password=passphrase)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeychainError(f"Stored private key is unreadable: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeychainError("Stored private key is not an RSA key.")
    return key


class KeyStore(ABC):
    """Generate-if-absent / load / derive capability for one identity."""

    KEY_SIZE = 4096
    PUBLIC_EXPONENT = 65537

    def __init__(self, identity_tag: Optional[str] = None, key_size: int = KEY_SIZE):
        self.identity_tag = identity_tag or config.identity_tag()
        self.key_size = key_size

    def _lock_scope(self) -> Hashable:
        return (type(self).__name__, self.identity_tag)

    def _lock(self) -> threading.Lock:
        return _lock_for(self._lock_scope())

    @abstractmethod
    def load_private_key(self):
        """
        Return the stored private key, or None if there is none.

        Raises:
            KeychainError: On backend malfunction (never on absence)
        """

    @abstractmethod
    def _store_if_absent(self, private_key):
        """Persist private_key unless one already exists; return the stored key."""

    def ensure_keypair(self):
        """
        Make sure a private key exists for this identity.

        Safe under concurrent first use: exactly one key is ever created,
        every caller gets that key back.

        Returns:
            The identity's RSA private key

        Raises:
            KeyGenerationError: If key generation fails
            KeychainError: On backend malfunction
        """
        with self._lock():
            existing = self.load_private_key()
            if existing is not None:
                return existing

            try:
                private_key = rsa.generate_private_key(
                    public_exponent=self.PUBLIC_EXPONENT,
                    key_size=self.key_size,
                )
            except (ValueError, UnsupportedAlgorithm) as e:
                raise KeyGenerationError(str(e)) from e

            stored = self._store_if_absent(private_key)
            if stored is private_key:
                logger.info("Generated RSA-%d keypair for '%s'", self.key_size, self.identity_tag)
            return stored

    def derive_public_key(self, private_key):
        return private_key.public_key()

    def export_public_der(self, public_key) -> bytes:
        """Canonical SubjectPublicKeyInfo DER of public_key."""
        return public_key_der(public_key)

    def current_public_key(self):
        """
        Public key of the stored identity.

        Raises:
            KeychainError: If no private key exists yet
        """
        private_key = self.load_private_key()
        if private_key is None:
            raise KeychainError("No private key found.")
        return self.derive_public_key(private_key)

    def public_key_record(self) -> PublicKeyRecord:
        return PublicKeyRecord.from_public_key(self.current_public_key())


class MemoryKeyStore(KeyStore):
    """Keys held in memory for the lifetime of the instance."""

    def __init__(self, identity_tag: Optional[str] = None, key_size: int = KeyStore.KEY_SIZE):
        super().__init__(identity_tag, key_size)
        self._keys = {}
        self._keys_lock = threading.Lock()

    def _lock(self) -> threading.Lock:
        return self._keys_lock

    def load_private_key(self):
        return self._keys.get(self.identity_tag)

    def _store_if_absent(self, private_key):
        return self._keys.setdefault(self.identity_tag, private_key)


_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]")


class FileKeyStore(KeyStore):
    """
    Private key stored as a PEM file inside the application directory.

    The file is published atomically with os.link(), which fails if the
    target exists, so two processes can never both install a key.
    """

    def __init__(
        self,
        directory: Optional[str] = None,
        identity_tag: Optional[str] = None,
        key_size: int = KeyStore.KEY_SIZE,
        passphrase: Optional[bytes] = None,
    ):
        super().__init__(identity_tag, key_size)
        self.directory = os.path.abspath(directory or config.app_dir())
        self.passphrase = passphrase if passphrase is not None else config.key_passphrase()
        filename = _UNSAFE_FILENAME.sub("_", self.identity_tag) + ".pem"
        self.path = os.path.join(self.directory, filename)

    def _lock_scope(self) -> Hashable:
        return ("file", self.path)

    def load_private_key(self):
        try:
            with open(self.path, "rb") as f:
                data = f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise KeychainError(f"Cannot read {self.path}: {e}") from e
        return deserialize_private_key(data, self.passphrase)

    def _store_if_absent(self, private_key):
        pem = serialize_private_key(private_key, self.passphrase)
        tmp_path = None
        try:
            os.makedirs(self.directory, exist_ok=True)
            # mkstemp creates the file with mode 0600
            fd, tmp_path = tempfile.mkstemp(prefix=".key-", dir=self.directory)
            with os.fdopen(fd, "wb") as f:
                f.write(pem)
                f.flush()
                os.fsync(f.fileno())
            try:
                os.link(tmp_path, self.path)
            except FileExistsError:
                logger.info("Key for '%s' was created concurrently; using it", self.identity_tag)
                return self.load_private_key()
            return private_key
        except OSError as e:
            raise KeychainError(f"Cannot write {self.path}: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)


def open_keystore(backend: Optional[str] = None, **kwargs) -> KeyStore:
    """
    Create the configured KeyStore.

    Args:
        backend: "file", "memory" or "mysql" (default: AEGIS_KEYSTORE)
        **kwargs: Passed to the backend constructor

    Returns:
        KeyStore instance
    """
    backend = (backend or config.keystore_backend()).lower()
    if backend == "file":
        return FileKeyStore(**kwargs)
    if backend == "memory":
        return MemoryKeyStore(**kwargs)
    if backend == "mysql":
        from aegis.storage.db import MySQLKeyStore
        return MySQLKeyStore(**kwargs)
    raise KeychainError(f"Unknown keystore backend '{backend}'.")
