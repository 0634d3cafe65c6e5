"""
Hybrid envelope encryption: RSA-OAEP-256 + AES-256-GCM + RSA-PSS-256

Encrypt:
    1. Fresh AES-256 key K, AES-GCM seal with a fresh 96-bit nonce
    2. Wrap K for the recipient with RSA-OAEP-256
    3. Sign nonce || combined || sender SPKI DER with RSA-PSS-256
    4. Embed the sender's public key (PEM) and fingerprint

Decrypt:
    1. Parse the embedded sender key and re-export its DER
    2. Verify the signature before touching the ciphertext
    3. Unwrap K, open the sealed box
    4. Recompute the sender fingerprint (the wire value is never trusted)

Either call fully succeeds or raises; nothing partial is ever returned.
"""

import logging
from dataclasses import dataclass
from typing import Tuple, Union

from aegis.common.exceptions import BadPEM, VerifyError
from aegis.common.protocol import ALGORITHM, Envelope, decode_envelope
from aegis.common.utils import b64encode
from aegis.crypto import aes
from aegis.crypto.pki import (
    LABEL_PUBLIC_KEY,
    fingerprint,
    parse_public_key_pem,
    public_key_der,
)
from aegis.crypto.der import pem_encode
from aegis.crypto.sign import sign_data, verify_signature
from aegis.crypto.wrap import unwrap_key, wrap_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecryptResult:
    """Outcome of a fully verified and opened envelope."""
    plaintext: bytes
    sender_public_key: object
    sender_fingerprint: str
    claimed_fingerprint: str

    @property
    def fingerprint_matches(self) -> bool:
        return self.claimed_fingerprint == self.sender_fingerprint


def _signed_bytes(nonce: bytes, combined: bytes, sender_der: bytes) -> bytes:
    return nonce + combined + sender_der


def encrypt_envelope(plaintext: bytes, sender_private_key, recipient_public_key) -> Envelope:
    """
    Encrypt plaintext for a recipient and sign it as the sender.

    Self-encryption is simply recipient_public_key == the sender's own key.

    Args:
        plaintext: Message bytes (may be empty)
        sender_private_key: Sender's RSA private key
        recipient_public_key: Recipient's RSA public key

    Returns:
        Envelope

    Raises:
        EncryptError: Recipient key cannot do RSA-OAEP-256
        SignError: Sender key cannot do RSA-PSS-256
    """
    key = aes.generate_key()
    nonce, combined = aes.seal(plaintext, key)
    enc_key = wrap_key(key, recipient_public_key)
    del key

    sender_der = public_key_der(sender_private_key.public_key())
    sender_pem = pem_encode(sender_der, LABEL_PUBLIC_KEY)

    signature = sign_data(_signed_bytes(nonce, combined, sender_der), sender_private_key)

    env = Envelope(
        alg=ALGORITHM,
        enc_key=b64encode(enc_key),
        nonce=b64encode(nonce),
        ciphertext=b64encode(combined),
        signature=b64encode(signature),
        sender_pub=sender_pem,
        sender_fp=fingerprint(sender_der),
    )
    logger.debug("Sealed %d byte(s) from %s", len(plaintext), env.sender_fp)
    return env


def verify_envelope(envelope: Union[str, bytes, Envelope]) -> Tuple[Envelope, object, bytes]:
    """
    Check an envelope's signature against its embedded sender key.

    Args:
        envelope: Envelope or transport text (base64-wrapped or raw JSON)

    Returns:
        Tuple of (envelope, sender_public_key, sender_der)

    Raises:
        BadJSON: Envelope could not be decoded
        VerifyError: Sender key unusable or signature mismatch
    """
    env = envelope if isinstance(envelope, Envelope) else decode_envelope(envelope)

    try:
        sender_key = parse_public_key_pem(env.sender_pub)
    except BadPEM as e:
        raise VerifyError(f"Sender public key unreadable: {e.detail}") from e
    sender_der = public_key_der(sender_key)

    signed = _signed_bytes(env.nonce_bytes(), env.ciphertext_bytes(), sender_der)
    if not verify_signature(signed, env.signature_bytes(), sender_key):
        raise VerifyError("Signature does not match sender key.")
    return env, sender_key, sender_der


def decrypt_envelope(envelope: Union[str, bytes, Envelope], recipient_private_key) -> DecryptResult:
    """
    Verify, unwrap and open an envelope.

    Args:
        envelope: Envelope or transport text (base64-wrapped or raw JSON)
        recipient_private_key: Recipient's RSA private key

    Returns:
        DecryptResult with plaintext and the recomputed sender identity

    Raises:
        BadJSON: Envelope could not be decoded
        VerifyError: Signature check failed
        DecryptError: Key unwrap or authentication tag failure
    """
    env, sender_key, sender_der = verify_envelope(envelope)

    key = unwrap_key(env.enc_key_bytes(), recipient_private_key)
    plaintext = aes.open_sealed(env.ciphertext_bytes(), key)
    del key

    sender_fp = fingerprint(sender_der)
    if sender_fp != env.sender_fp:
        logger.warning("Envelope sender_fp does not match embedded key; using %s", sender_fp)

    return DecryptResult(
        plaintext=plaintext,
        sender_public_key=sender_key,
        sender_fingerprint=sender_fp,
        claimed_fingerprint=env.sender_fp,
    )
