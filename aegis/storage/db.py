"""
MySQL-backed identity key storage

Stores one PKCS#8 PEM private key per identity tag. The identity tag is
the primary key, so INSERT IGNORE followed by a read-back gives
exactly-once creation even across hosts sharing the database.
"""

import mysql.connector
from typing import Callable, Optional

from aegis.common import config
from aegis.common.exceptions import KeychainError
from aegis.storage.keystore import KeyStore, deserialize_private_key, serialize_private_key


def get_db_connection():
    """
    Create and return a MySQL database connection.

    Returns:
        MySQL connection object

    Raises:
        KeychainError: If connection fails
    """
    try:
        return mysql.connector.connect(**config.db_settings())
    except mysql.connector.Error as e:
        raise KeychainError(f"Database connection failed: {e}")


SCHEMA = """
    CREATE TABLE IF NOT EXISTS identity_keys (
        identity_tag VARCHAR(255) PRIMARY KEY,
        private_pem TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
"""


def init_db(connection_factory: Callable = get_db_connection):
    """
    Initialize database schema.
    Creates the identity_keys table if it doesn't exist.
    """
    conn = None
    try:
        conn = connection_factory()
        cursor = conn.cursor()
        cursor.execute(SCHEMA)
        conn.commit()
    except mysql.connector.Error as e:
        raise KeychainError(f"Database initialization failed: {e}")
    finally:
        if conn:
            conn.close()


class MySQLKeyStore(KeyStore):
    """KeyStore persisted in the identity_keys table."""

    def __init__(
        self,
        identity_tag: Optional[str] = None,
        key_size: int = KeyStore.KEY_SIZE,
        passphrase: Optional[bytes] = None,
        connection_factory: Callable = get_db_connection,
    ):
        super().__init__(identity_tag, key_size)
        self.passphrase = passphrase if passphrase is not None else config.key_passphrase()
        self._connect = connection_factory
        self._schema_ready = False

    def _lock_scope(self):
        settings = config.db_settings()
        return ("mysql", settings['host'], settings['port'], settings['database'], self.identity_tag)

    def _ensure_schema(self):
        if not self._schema_ready:
            init_db(self._connect)
            self._schema_ready = True

    def _fetch_pem(self, cursor) -> Optional[bytes]:
        cursor.execute(
            "SELECT private_pem FROM identity_keys WHERE identity_tag = %s",
            (self.identity_tag,)
        )
        row = cursor.fetchone()
        if not row:
            return None
        pem = row[0]
        return pem.encode('ascii') if isinstance(pem, str) else bytes(pem)

    def load_private_key(self):
        self._ensure_schema()
        conn = None
        try:
            conn = self._connect()
            pem = self._fetch_pem(conn.cursor())
        except mysql.connector.Error as e:
            raise KeychainError(f"Key lookup failed: {e}")
        finally:
            if conn:
                conn.close()
        if pem is None:
            return None
        return deserialize_private_key(pem, self.passphrase)

    def _store_if_absent(self, private_key):
        self._ensure_schema()
        pem = serialize_private_key(private_key, self.passphrase)
        conn = None
        try:
            conn = self._connect()
            cursor = conn.cursor()
            cursor.execute(
                "INSERT IGNORE INTO identity_keys (identity_tag, private_pem) VALUES (%s, %s)",
                (self.identity_tag, pem.decode('ascii'))
            )
            conn.commit()
            stored = self._fetch_pem(cursor)
        except mysql.connector.Error as e:
            raise KeychainError(f"Key insert failed: {e}")
        finally:
            if conn:
                conn.close()

        if stored is None:
            raise KeychainError("Key row missing after insert.")
        if stored == pem:
            return private_key
        return deserialize_private_key(stored, self.passphrase)
