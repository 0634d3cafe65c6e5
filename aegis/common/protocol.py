"""
Wire envelope definition using Pydantic.

An envelope is serialized to UTF-8 JSON and, for copy-paste transport,
additionally base64-wrapped. Decoders accept both forms.
"""

import base64
import binascii
import re
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from aegis.common.exceptions import BadJSON
from aegis.common.utils import b64decode

ALGORITHM = "RSA-OAEP-256+AES-GCM+RSA-PSS-256"

_WHITESPACE = re.compile(r"\s+")


class Envelope(BaseModel):
    """Hybrid-encrypted, signed message envelope."""
    model_config = ConfigDict(frozen=True, extra="ignore", strict=True)

    alg: str = Field(..., description="Informational suite identifier")
    enc_key: str = Field(..., description="Base64 RSA-OAEP-256 wrapped AES key")
    nonce: str = Field(..., description="Base64 96-bit AES-GCM nonce")
    ciphertext: str = Field(..., description="Base64 nonce || ciphertext || tag")
    signature: str = Field(..., description="Base64 RSA-PSS-256 over nonce||ciphertext||sender DER")
    sender_pub: str = Field(..., description="Sender public key, PEM (SPKI)")
    sender_fp: str = Field(..., description="Base64 SHA-256 of sender SPKI DER")

    @field_validator("enc_key", "nonce", "ciphertext", "signature", "sender_fp")
    @classmethod
    def _must_be_base64(cls, value: str) -> str:
        b64decode(value)
        return value

    def enc_key_bytes(self) -> bytes:
        return b64decode(self.enc_key)

    def nonce_bytes(self) -> bytes:
        return b64decode(self.nonce)

    def ciphertext_bytes(self) -> bytes:
        return b64decode(self.ciphertext)

    def signature_bytes(self) -> bytes:
        return b64decode(self.signature)


def encode_envelope(env: Envelope) -> str:
    """Serialize an envelope to its JSON text."""
    return env.model_dump_json()


def wrap_transport(json_text: str) -> str:
    """Base64-wrap envelope JSON for safe copy-paste."""
    return base64.b64encode(json_text.encode('utf-8')).decode('ascii')


def serialize_envelope(env: Envelope) -> str:
    """Canonical shareable form: base64(JSON)."""
    return wrap_transport(encode_envelope(env))


def unwrap_transport(text: str) -> str:
    """
    Undo the outer transport encoding, if present.

    The input is first treated as base64 (whitespace ignored) whose
    payload must be UTF-8; if either step fails, the input is returned
    unchanged as raw JSON text.

    Args:
        text: Base64-wrapped or raw envelope JSON

    Returns:
        Envelope JSON text
    """
    raw = text.strip()
    compact = _WHITESPACE.sub("", raw)
    if not compact:
        return raw
    try:
        return base64.b64decode(compact, validate=True).decode('utf-8')
    except (binascii.Error, ValueError):
        return raw


def decode_envelope(text) -> Envelope:
    """
    Parse an envelope from transport text.

    Args:
        text: Base64-wrapped or raw JSON (str or UTF-8 bytes)

    Returns:
        Validated Envelope

    Raises:
        BadJSON: Unparsable JSON, missing field or malformed base64 field
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode('utf-8')
        except UnicodeDecodeError as e:
            raise BadJSON("Envelope is not UTF-8 text.") from e
    if not isinstance(text, str):
        raise BadJSON("Envelope must be text.")

    try:
        return Envelope.model_validate_json(unwrap_transport(text))
    except ValidationError as e:
        raise BadJSON(f"{e.error_count()} validation error(s).") from e


# Test function
if __name__ == "__main__":
    print("[*] Testing envelope codec")

    env = Envelope(
        alg=ALGORITHM,
        enc_key="ZW5jX2tleQ==",
        nonce="bm9uY2Vub25jZTEy",
        ciphertext="Y2lwaGVydGV4dA==",
        signature="c2lnbmF0dXJl",
        sender_pub="-----BEGIN PUBLIC KEY-----\n...\n-----END PUBLIC KEY-----\n",
        sender_fp="ZnA=",
    )
    raw_json = encode_envelope(env)
    wrapped = serialize_envelope(env)
    print(f"\n[1] JSON: {raw_json}")
    print(f"\n[2] Transport: {wrapped[:64]}...")

    assert decode_envelope(wrapped) == env
    assert decode_envelope(raw_json) == env

    print("\n[✓] Envelope codec test passed!")
