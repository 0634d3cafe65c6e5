"""
Single-slot trust cache for the last verified correspondent.

The cache is a session-lived value owned by the caller. Every successful
decrypt overwrites it (last writer wins); it is never persisted.
"""

import threading
from dataclasses import dataclass
from typing import Optional

from aegis.crypto.pki import public_key_fingerprint


@dataclass(frozen=True)
class TrustEntry:
    public_key: object
    fingerprint: str


class TrustCache:
    """Mutex-guarded slot holding at most one TrustEntry."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entry: Optional[TrustEntry] = None

    def get(self) -> Optional[TrustEntry]:
        with self._lock:
            return self._entry

    def replace(self, public_key, fingerprint: Optional[str] = None) -> TrustEntry:
        """
        Unconditionally overwrite the slot.

        Args:
            public_key: Correspondent's verified public key
            fingerprint: Its fingerprint (computed if omitted)

        Returns:
            The new entry
        """
        entry = TrustEntry(public_key, fingerprint or public_key_fingerprint(public_key))
        with self._lock:
            self._entry = entry
        return entry

    def clear(self):
        with self._lock:
            self._entry = None

    def recipient_or(self, default_key) -> TrustEntry:
        """Cached correspondent, or an entry for default_key if the slot is empty."""
        entry = self.get()
        if entry is not None:
            return entry
        return TrustEntry(default_key, public_key_fingerprint(default_key))
