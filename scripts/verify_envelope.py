#!/usr/bin/env python3
"""
Offline Envelope Verification Tool

Checks who sent an envelope without being able to read it:
1. Decodes the envelope (base64-wrapped or raw JSON)
2. Verifies the RSA-PSS signature against the embedded sender key
3. Recomputes the sender fingerprint and compares it to the claimed one
4. Optionally checks the sender against an expected PEM/certificate

Usage:
    python scripts/verify_envelope.py --envelope message.txt
    python scripts/verify_envelope.py --envelope message.txt --expect alice_cert.pem
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from aegis.common.exceptions import AegisException
from aegis.crypto.hybrid import verify_envelope
from aegis.crypto.pki import fingerprint, parse_public_key_pem, public_key_fingerprint


def verify_file(envelope_path: str, expected_pem_path: str = None) -> bool:
    """
    Verify an envelope stored in a file.

    Args:
        envelope_path: Path to envelope text
        expected_pem_path: Optional PEM (key or certificate) of the expected sender

    Returns:
        True if every check passed
    """
    print("\n" + "=" * 70)
    print("  ENVELOPE VERIFICATION")
    print("=" * 70)

    print(f"\n[1] Loading envelope: {envelope_path}")
    with open(envelope_path, 'r', encoding='utf-8') as f:
        text = f.read()

    print(f"\n[2] Verifying signature...")
    try:
        env, sender_key, sender_der = verify_envelope(text)
    except AegisException as e:
        print(f"    [✗] {e}")
        print("\n" + "=" * 70)
        print("  VERIFICATION RESULT: ✗ VERIFICATION FAILED")
        print("=" * 70 + "\n")
        return False

    print(f"    [✓] Signature VALID")
    print(f"    Algorithm: {env.alg}")
    print(f"    Key size: {sender_key.key_size} bits")

    print(f"\n[3] Checking sender fingerprint...")
    computed = fingerprint(sender_der)
    print(f"    Computed: {computed}")
    print(f"    Claimed:  {env.sender_fp}")
    fp_ok = computed == env.sender_fp
    if fp_ok:
        print(f"    [✓] Fingerprint MATCHES")
    else:
        print(f"    [!] Claimed fingerprint does not match the signed key")

    sender_ok = True
    if expected_pem_path:
        print(f"\n[4] Comparing with expected sender: {expected_pem_path}")
        with open(expected_pem_path, 'rb') as f:
            expected = public_key_fingerprint(parse_public_key_pem(f.read()))
        sender_ok = expected == computed
        if sender_ok:
            print(f"    [✓] Sender is {expected}")
        else:
            print(f"    [✗] Sender MISMATCH (expected {expected})")

    passed = fp_ok and sender_ok
    print("\n" + "=" * 70)
    if passed:
        print("  VERIFICATION RESULT: ✓ ALL CHECKS PASSED")
    else:
        print("  VERIFICATION RESULT: ✗ VERIFICATION FAILED")
    print("=" * 70 + "\n")
    return passed


def main():
    parser = argparse.ArgumentParser(
        description="Verify an Aegis envelope's signature and sender offline"
    )
    parser.add_argument(
        "--envelope",
        required=True,
        help="Path to envelope file (base64 or raw JSON)"
    )
    parser.add_argument(
        "--expect",
        help="PEM public key or certificate of the expected sender"
    )

    args = parser.parse_args()

    try:
        ok = verify_file(args.envelope, args.expect)
    except FileNotFoundError as e:
        print(f"\n[ERROR] File not found: {e}")
        ok = False
    except AegisException as e:
        print(f"\n[ERROR] {e}")
        ok = False

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
