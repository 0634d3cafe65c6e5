#!/usr/bin/env python3
"""
Export the Local Identity as an X.509 Certificate

Wraps the identity's public key in a self-signed certificate so it can be
shared under the CERTIFICATE PEM label. The private key never leaves the
key store.

Usage:
    python scripts/gen_cert.py --cn alice --out alice_cert.pem
    python scripts/gen_cert.py --cn alice --out alice_cert.pem --keystore mysql
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cryptography.hazmat.primitives import serialization

from aegis.common.exceptions import AegisException
from aegis.crypto.pki import get_certificate_info, issue_self_signed_certificate
from aegis.storage.keystore import open_keystore


def export_identity_certificate(
    common_name: str,
    output_path: str,
    validity_days: int = 365,
    backend: str = None,
):
    """
    Issue and save a certificate for the local identity.

    Args:
        common_name: Common Name (CN) for the certificate
        output_path: Destination PEM file
        validity_days: Certificate validity period in days
        backend: Key store backend (default: AEGIS_KEYSTORE)

    Returns:
        Certificate object
    """
    keystore = open_keystore(backend)

    print(f"[*] Loading identity '{keystore.identity_tag}'...")
    private_key = keystore.ensure_keypair()

    print(f"[*] Creating certificate for '{common_name}'...")
    cert = issue_self_signed_certificate(private_key, common_name, validity_days=validity_days)

    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output_path, "wb") as f:
        f.write(cert.public_bytes(serialization.Encoding.PEM))
    print(f"[+] Certificate saved to: {output_path}")

    info = get_certificate_info(cert)
    print(f"    Subject: {info['subject']}")
    print(f"    Valid from: {info['not_valid_before']}")
    print(f"    Valid until: {info['not_valid_after']}")
    print(f"    Key fingerprint: {info['key_fingerprint']}")

    return cert


def main():
    parser = argparse.ArgumentParser(
        description="Export the local identity key as a self-signed certificate"
    )
    parser.add_argument(
        "--cn",
        required=True,
        help="Common Name (CN) for the certificate"
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output PEM file for the certificate"
    )
    parser.add_argument(
        "--days",
        type=int,
        default=365,
        help="Validity period in days (default: 365)"
    )
    parser.add_argument(
        "--keystore",
        choices=["file", "memory", "mysql"],
        help="Key storage backend (default: AEGIS_KEYSTORE or file)"
    )

    args = parser.parse_args()

    try:
        export_identity_certificate(args.cn, args.out, args.days, args.keystore)
    except AegisException as e:
        print(f"\n[✗] {e}")
        sys.exit(1)

    print(f"\n[✓] Certificate exported successfully!")


if __name__ == "__main__":
    main()
