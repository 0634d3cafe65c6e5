"""
Common utilities and protocol definitions for Aegis.
"""

from .protocol import *
from .utils import sha256_digest, b64encode, b64decode
from .exceptions import *

__all__ = [
    'sha256_digest',
    'b64encode',
    'b64decode',
]
