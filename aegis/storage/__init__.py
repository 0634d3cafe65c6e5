"""
Storage modules for Aegis.

Includes:
- KeyStore backends (memory, file, MySQL) for the identity private key
- TrustCache for the last verified correspondent
"""

from .keystore import KeyStore, MemoryKeyStore, FileKeyStore, open_keystore
from .db import MySQLKeyStore, init_db
from .trust import TrustCache, TrustEntry

__all__ = [
    'KeyStore',
    'MemoryKeyStore',
    'FileKeyStore',
    'MySQLKeyStore',
    'open_keystore',
    'init_db',
    'TrustCache',
    'TrustEntry',
]
