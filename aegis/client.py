#!/usr/bin/env python3
"""
Aegis Client

Drives the envelope protocol for one local identity:
- Encrypt to an explicit recipient, the last verified sender, or self
- Decrypt and learn the sender as the reply-to correspondent
- Record failures in the append-only error log
"""

import argparse
import logging
import sys
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Union

from aegis import __version__
from aegis.common import config
from aegis.common.exceptions import AegisException, KeychainError, OperationCancelled
from aegis.common.logger import get_logger
from aegis.common.protocol import Envelope, encode_envelope, serialize_envelope
from aegis.crypto.hybrid import DecryptResult, decrypt_envelope, encrypt_envelope
from aegis.crypto.pki import PublicKeyRecord, fingerprint, parse_public_key_pem
from aegis.storage.keystore import KeyStore, open_keystore
from aegis.storage.trust import TrustCache

ProgressCallback = Callable[[float, str], None]


@dataclass(frozen=True)
class EncryptOutcome:
    envelope: Envelope
    transport: str
    recipient_fingerprint: str
    to_self: bool


class AegisClient:
    """
    One identity's view of the protocol.

    The TrustCache is passed in (or created) by the caller and lives as
    long as this client; nothing about the correspondent is persisted.
    """

    def __init__(
        self,
        keystore: Optional[KeyStore] = None,
        trust_cache: Optional[TrustCache] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.keystore = keystore or open_keystore()
        self.trust_cache = trust_cache if trust_cache is not None else TrustCache()
        self.logger = logger or get_logger(
            "aegis", level=config.log_level(), to_file=config.log_file()
        )

    def _private_key(self):
        private_key = self.keystore.ensure_keypair()
        if private_key is None:
            raise KeychainError("Private key not found.")
        return private_key

    def whoami(self) -> PublicKeyRecord:
        """Own public key, PEM and fingerprint (provisioning the key if needed)."""
        return PublicKeyRecord.from_public_key(
            self.keystore.derive_public_key(self._private_key())
        )

    def encrypt(
        self,
        plaintext: Union[str, bytes],
        recipient=None,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EncryptOutcome:
        """
        Encrypt a message.

        Recipient selection: explicit recipient, else the TrustCache entry,
        else the local identity itself.

        Cancellation is checked between steps only. A cancellation noticed
        after sealing discards the finished envelope.

        Args:
            plaintext: Message text or bytes
            recipient: Optional RSA public key or PEM text of the recipient
            progress: Optional callback receiving (fraction, status)
            cancel_event: Optional event; when set, the operation stops

        Returns:
            EncryptOutcome

        Raises:
            OperationCancelled: If cancel_event was set
            AegisException: Any protocol failure
        """
        def step(fraction: float, status: str):
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelled("Encryption canceled.")
            if progress is not None:
                progress(fraction, status)

        try:
            step(0.10, "Ensuring local keypair…")
            private_key = self._private_key()
            own_key = self.keystore.derive_public_key(private_key)

            if recipient is not None:
                if isinstance(recipient, (str, bytes)):
                    recipient = parse_public_key_pem(recipient)
                recipient_key = recipient
                status = "Using supplied recipient key…"
            else:
                recipient_key = self.trust_cache.recipient_or(own_key).public_key
                status = "Using learned reply-to key…"

            recipient_der = self.keystore.export_public_der(recipient_key)
            to_self = recipient_der == self.keystore.export_public_der(own_key)
            if to_self and recipient is None:
                status = "No recipient yet, encrypting to self…"
            step(0.20, status)

            data = plaintext.encode('utf-8') if isinstance(plaintext, str) else bytes(plaintext)
            step(0.35, "Preparing plaintext…")
            step(0.70, "Sealing with AES-GCM, wrapping key, signing…")

            envelope = encrypt_envelope(data, private_key, recipient_key)
            transport = serialize_envelope(envelope)
            step(0.95, "Envelope ready…")

        except OperationCancelled:
            self.logger.info("Encryption canceled")
            raise
        except AegisException as e:
            self.logger.error("Encrypt error: %s", e)
            raise

        return EncryptOutcome(
            envelope=envelope,
            transport=transport,
            recipient_fingerprint=fingerprint(recipient_der),
            to_self=to_self,
        )

    def decrypt(self, incoming: Union[str, bytes]) -> DecryptResult:
        """
        Verify and decrypt an envelope, then learn its sender.

        Args:
            incoming: Base64-wrapped envelope or raw JSON

        Returns:
            DecryptResult

        Raises:
            AegisException: Any protocol failure (nothing is learned)
        """
        try:
            private_key = self._private_key()
            result = decrypt_envelope(incoming, private_key)
        except AegisException as e:
            self.logger.error("Decrypt error: %s", e)
            raise

        self.trust_cache.replace(result.sender_public_key, result.sender_fingerprint)
        return result


def _read_message(stream) -> str:
    data = stream.read()
    return data[:-1] if data.endswith("\n") else data


def _print_progress(fraction: float, status: str):
    print(f"  [{int(fraction * 100):3d}%] {status}", file=sys.stderr)


def cmd_whoami(client: AegisClient, args) -> int:
    record = client.whoami()
    print(f"Fingerprint: {record.fingerprint}")
    print(record.pem, end="")
    return 0


def cmd_encrypt(client: AegisClient, args) -> int:
    recipient = None
    if args.to:
        with open(args.to, "rb") as f:
            recipient = f.read()
    text = args.message if args.message is not None else _read_message(sys.stdin)
    outcome = client.encrypt(text, recipient=recipient,
                             progress=_print_progress if args.verbose else None)
    if args.raw:
        print(encode_envelope(outcome.envelope))
    else:
        print(outcome.transport)
    print(f"[✓] Encrypted to: {outcome.recipient_fingerprint}"
          f"{' (self)' if outcome.to_self else ''}", file=sys.stderr)
    return 0


def cmd_decrypt(client: AegisClient, args) -> int:
    result = client.decrypt(sys.stdin.read())
    sys.stdout.write(result.plaintext.decode('utf-8', errors='replace'))
    sys.stdout.write("\n")
    print(f"[✓] Signature verified. Sender: {result.sender_fingerprint}", file=sys.stderr)
    if not result.fingerprint_matches:
        print("[!] Warning: envelope's claimed sender_fp differs from its key", file=sys.stderr)
    return 0


def cmd_shell(client: AegisClient, args) -> int:
    """Interactive session; the learned reply-to key lives until exit."""
    print("=" * 70)
    print(f"  AEGIS v{__version__}")
    print("  (E)ncrypt, (D)ecrypt, (W)hoami, (Q)uit")
    print("=" * 70 + "\n")

    while True:
        try:
            choice = input("[?] Action: ").strip().upper()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        try:
            if choice == 'E':
                text = input("  Message: ")
                outcome = client.encrypt(text, progress=_print_progress)
                print(f"\n{outcome.transport}\n")
                print(f"  [✓] To: {outcome.recipient_fingerprint}")
            elif choice == 'D':
                incoming = input("  Envelope: ")
                result = client.decrypt(incoming)
                print(f"\n{result.plaintext.decode('utf-8', errors='replace')}\n")
                print(f"  [✓] Signature verified. Reply-to learned: {result.sender_fingerprint}")
            elif choice == 'W':
                entry = client.trust_cache.get()
                print(f"  Me:       {client.whoami().fingerprint}")
                print(f"  Reply-to: {entry.fingerprint if entry else 'none'}")
            elif choice == 'Q':
                break
            elif choice:
                print("  [!] Unknown action")
        except AegisException as e:
            print(f"  [✗] {e}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aegis",
        description="End-to-end encrypted, signed messages for copy-paste transport"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--keystore",
        choices=["file", "memory", "mysql"],
        help="Key storage backend (default: AEGIS_KEYSTORE or file)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("whoami", help="Show own public key and fingerprint")
    p.set_defaults(func=cmd_whoami)

    p = sub.add_parser("encrypt", help="Encrypt a message (stdin or -m)")
    p.add_argument("-m", "--message", help="Message text (default: read stdin)")
    p.add_argument("--to", help="Recipient PEM file (PUBLIC KEY, RSA PUBLIC KEY or CERTIFICATE)")
    p.add_argument("--raw", action="store_true", help="Print raw JSON instead of base64")
    p.add_argument("-v", "--verbose", action="store_true", help="Show progress on stderr")
    p.set_defaults(func=cmd_encrypt)

    p = sub.add_parser("decrypt", help="Decrypt an envelope read from stdin")
    p.set_defaults(func=cmd_decrypt)

    p = sub.add_parser("shell", help="Interactive session with reply-to tracking")
    p.set_defaults(func=cmd_shell)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    client = AegisClient(keystore=open_keystore(args.keystore))
    try:
        return args.func(client, args)
    except AegisException as e:
        print(f"[✗] {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"[✗] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
