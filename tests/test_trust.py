"""
Trust cache tests
"""

import threading

from aegis.crypto.pki import public_key_fingerprint
from aegis.storage.trust import TrustCache, TrustEntry


def test_empty_cache():
    cache = TrustCache()
    assert cache.get() is None


def test_replace_overwrites(alice_key, bob_key):
    cache = TrustCache()
    first = cache.replace(alice_key.public_key())
    assert first.fingerprint == public_key_fingerprint(alice_key.public_key())
    assert cache.get() == first

    second = cache.replace(bob_key.public_key(), "given-fp")
    assert cache.get() == second
    assert second.fingerprint == "given-fp"


def test_clear(alice_key):
    cache = TrustCache()
    cache.replace(alice_key.public_key())
    cache.clear()
    assert cache.get() is None


def test_recipient_or_falls_back_to_default(alice_key, bob_key):
    cache = TrustCache()
    fallback = cache.recipient_or(alice_key.public_key())
    assert isinstance(fallback, TrustEntry)
    assert fallback.fingerprint == public_key_fingerprint(alice_key.public_key())
    assert cache.get() is None

    cache.replace(bob_key.public_key())
    chosen = cache.recipient_or(alice_key.public_key())
    assert chosen.fingerprint == public_key_fingerprint(bob_key.public_key())


def test_concurrent_replace_never_tears(alice_key, bob_key):
    entries = [
        TrustEntry(alice_key.public_key(), public_key_fingerprint(alice_key.public_key())),
        TrustEntry(bob_key.public_key(), public_key_fingerprint(bob_key.public_key())),
    ]
    cache = TrustCache()
    cache.replace(entries[0].public_key, entries[0].fingerprint)
    seen = []

    def writer(entry):
        for _ in range(500):
            cache.replace(entry.public_key, entry.fingerprint)

    def reader():
        for _ in range(1000):
            seen.append(cache.get())

    threads = [threading.Thread(target=writer, args=(e,)) for e in entries]
    threads.append(threading.Thread(target=reader))
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    valid = {(id(e.public_key), e.fingerprint) for e in entries}
    assert len(seen) == 1000
    assert all((id(s.public_key), s.fingerprint) in valid for s in seen)
