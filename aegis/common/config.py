"""
Environment-driven configuration for Aegis.

Values are read from the process environment, optionally seeded from a
.env file in the working directory.
"""

import os
from dotenv import load_dotenv

load_dotenv()

DEFAULT_IDENTITY_TAG = "aegis.rsa4096.priv"
DEFAULT_KEYSTORE = "file"


def app_dir() -> str:
    """
    Return the application directory, creating it if needed.

    Returns:
        Absolute path of AEGIS_HOME (default: ~/.aegis)
    """
    path = os.path.expanduser(os.getenv('AEGIS_HOME', os.path.join('~', '.aegis')))
    os.makedirs(path, exist_ok=True)
    return os.path.abspath(path)


def identity_tag() -> str:
    return os.getenv('AEGIS_IDENTITY_TAG', DEFAULT_IDENTITY_TAG)


def keystore_backend() -> str:
    return os.getenv('AEGIS_KEYSTORE', DEFAULT_KEYSTORE).strip().lower()


def key_passphrase():
    """Passphrase protecting the private key file, or None."""
    value = os.getenv('AEGIS_KEY_PASSPHRASE')
    return value.encode('utf-8') if value else None


def log_file() -> str:
    path = os.getenv('AEGIS_LOG_FILE')
    if path:
        return path
    return os.path.join(app_dir(), 'aegis_error.log')


def log_level() -> str:
    return os.getenv('AEGIS_LOG_LEVEL', 'WARNING').upper()


def db_settings() -> dict:
    """
    MySQL connection parameters for the database-backed keystore.

    Returns:
        Keyword arguments for mysql.connector.connect()
    """
    return {
        'host': os.getenv('DB_HOST', 'localhost'),
        'port': int(os.getenv('DB_PORT', 3306)),
        'database': os.getenv('DB_NAME', 'aegis'),
        'user': os.getenv('DB_USER', 'aegis'),
        'password': os.getenv('DB_PASSWORD', 'aegis'),
    }
