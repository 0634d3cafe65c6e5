"""
ASN.1 DER writer/reader and PEM armoring

Implements the small subset of X.690 DER needed to handle RSA public keys:
- SEQUENCE, INTEGER, BIT STRING, NULL and OBJECT IDENTIFIER nodes
- Definite-length encoding (short and long form)
- PKCS#1 RSAPublicKey -> SubjectPublicKeyInfo wrapping
- PEM encode/decode with 64-column base64 bodies
"""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import List, Tuple, Union

from aegis.common.exceptions import BadPEM

TAG_INTEGER = 0x02
TAG_BIT_STRING = 0x03
TAG_NULL = 0x05
TAG_OID = 0x06
TAG_SEQUENCE = 0x30

RSA_ENCRYPTION_OID = "1.2.840.113549.1.1.1"

MAX_DEPTH = 16  # SPKI needs 3 levels

PEM_LINE_LENGTH = 64
_PEM_BEGIN = re.compile(r"-----BEGIN ([A-Z0-9 ]+)-----")
_NON_BASE64 = re.compile(r"[^A-Za-z0-9+/=]")


def encode_length(n: int) -> bytes:
    """
    Encode a DER definite length.

    Short form (one byte) for n < 128, otherwise long form:
    0x80 | byte_count followed by the big-endian length bytes.

    Args:
        n: Content length in bytes

    Returns:
        Encoded length octets

    Raises:
        ValueError: If n is negative
    """
    if n < 0:
        raise ValueError(f"DER length must be non-negative, got {n}")
    if n < 0x80:
        return bytes([n])
    body = n.to_bytes((n.bit_length() + 7) // 8, byteorder='big')
    return bytes([0x80 | len(body)]) + body


def decode_length(data: bytes, offset: int) -> Tuple[int, int]:
    """
    Decode a DER length starting at offset.

    Returns:
        Tuple of (length, offset of first content byte)

    Raises:
        ValueError: On truncated or non-minimal encodings
    """
    if offset >= len(data):
        raise ValueError("Truncated length")
    first = data[offset]
    offset += 1
    if first < 0x80:
        return first, offset
    count = first & 0x7F
    if count == 0:
        raise ValueError("Indefinite length is not allowed in DER")
    if offset + count > len(data):
        raise ValueError("Truncated long-form length")
    body = data[offset:offset + count]
    if body[0] == 0:
        raise ValueError("Non-minimal long-form length")
    length = int.from_bytes(body, byteorder='big')
    if length < 0x80:
        raise ValueError("Long form used for short length")
    return length, offset + count


def _tlv(tag: int, content: bytes) -> bytes:
    return bytes([tag]) + encode_length(len(content)) + content


@dataclass(frozen=True)
class Integer:
    value: int

    def encode(self) -> bytes:
        n = self.value
        magnitude = n if n >= 0 else -n - 1
        length = (magnitude.bit_length() + 8) // 8
        return _tlv(TAG_INTEGER, n.to_bytes(length, byteorder='big', signed=True))


@dataclass(frozen=True)
class BitString:
    data: bytes
    unused_bits: int = 0

    def encode(self) -> bytes:
        return _tlv(TAG_BIT_STRING, bytes([self.unused_bits]) + self.data)


@dataclass(frozen=True)
class Null:

    def encode(self) -> bytes:
        return _tlv(TAG_NULL, b"")


@dataclass(frozen=True)
class ObjectIdentifier:
    dotted: str

    def encode(self) -> bytes:
        arcs = [int(a) for a in self.dotted.split(".")]
        if len(arcs) < 2 or arcs[0] > 2 or (arcs[0] < 2 and arcs[1] >= 40):
            raise ValueError(f"Invalid OID: {self.dotted}")
        body = bytearray()
        for arc in [arcs[0] * 40 + arcs[1]] + arcs[2:]:
            chunk = [arc & 0x7F]
            arc >>= 7
            while arc:
                chunk.insert(0, 0x80 | (arc & 0x7F))
                arc >>= 7
            body.extend(chunk)
        return _tlv(TAG_OID, bytes(body))


@dataclass(frozen=True)
class Sequence:
    items: Tuple["Node", ...]

    def encode(self) -> bytes:
        return _tlv(TAG_SEQUENCE, b"".join(item.encode() for item in self.items))


Node = Union[Integer, BitString, Null, ObjectIdentifier, Sequence]


def _decode_oid(content: bytes) -> str:
    if not content:
        raise ValueError("Empty OID")
    arcs: List[int] = []
    value = 0
    for byte in content:
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            arcs.append(value)
            value = 0
    if content[-1] & 0x80:
        raise ValueError("Truncated OID arc")
    first = arcs[0]
    head = [min(first // 40, 2), first - 40 * min(first // 40, 2)]
    return ".".join(str(a) for a in head + arcs[1:])


def _decode_node(data: bytes, offset: int, depth: int = 0) -> Tuple[Node, int]:
    if depth > MAX_DEPTH:
        raise ValueError(f"Nesting deeper than {MAX_DEPTH} levels")
    if offset >= len(data):
        raise ValueError("Truncated TLV")
    tag = data[offset]
    length, start = decode_length(data, offset + 1)
    end = start + length
    if end > len(data):
        raise ValueError("Content exceeds available data")
    content = data[start:end]

    if tag == TAG_SEQUENCE:
        items = []
        pos = 0
        while pos < len(content):
            item, pos = _decode_node(content, pos, depth + 1)
            items.append(item)
        return Sequence(tuple(items)), end
    if tag == TAG_INTEGER:
        if not content:
            raise ValueError("Empty INTEGER")
        return Integer(int.from_bytes(content, byteorder='big', signed=True)), end
    if tag == TAG_BIT_STRING:
        if not content or content[0] > 7:
            raise ValueError("Malformed BIT STRING")
        return BitString(content[1:], content[0]), end
    if tag == TAG_NULL:
        if content:
            raise ValueError("NULL with content")
        return Null(), end
    if tag == TAG_OID:
        return ObjectIdentifier(_decode_oid(content)), end
    raise ValueError(f"Unsupported DER tag 0x{tag:02x}")


def decode(data: bytes) -> Node:
    """
    Parse a single DER element.

    Args:
        data: DER bytes containing exactly one element

    Returns:
        Decoded node

    Raises:
        ValueError: If the encoding is malformed or has trailing bytes
    """
    node, end = _decode_node(bytes(data), 0)
    if end != len(data):
        raise ValueError("Trailing bytes after DER element")
    return node


def rsa_algorithm_identifier() -> Sequence:
    """AlgorithmIdentifier for rsaEncryption with NULL parameters."""
    return Sequence((ObjectIdentifier(RSA_ENCRYPTION_OID), Null()))


def wrap_pkcs1_as_spki(pkcs1_der: bytes) -> bytes:
    """
    Wrap a PKCS#1 RSAPublicKey inside a SubjectPublicKeyInfo.

    SEQUENCE {
        SEQUENCE { OID rsaEncryption, NULL },
        BIT STRING { 0x00 || pkcs1_der }
    }

    Args:
        pkcs1_der: DER-encoded RSAPublicKey

    Returns:
        DER-encoded SubjectPublicKeyInfo
    """
    return Sequence((rsa_algorithm_identifier(), BitString(bytes(pkcs1_der)))).encode()


def is_rsa_public_key_pkcs1(der: bytes) -> bool:
    """Return True if der is SEQUENCE { INTEGER modulus, INTEGER exponent }."""
    try:
        node = decode(der)
    except ValueError:
        return False
    return (
        isinstance(node, Sequence)
        and len(node.items) == 2
        and all(isinstance(item, Integer) and item.value > 0 for item in node.items)
    )


def pem_encode(der: bytes, label: str) -> str:
    """
    Armor DER bytes as PEM.

    Args:
        der: DER bytes
        label: PEM label, e.g. "PUBLIC KEY"

    Returns:
        PEM text ending in a newline
    """
    b64 = base64.b64encode(der).decode('ascii')
    lines = [b64[i:i + PEM_LINE_LENGTH] for i in range(0, len(b64), PEM_LINE_LENGTH)]
    body = "\n".join(lines)
    return f"-----BEGIN {label}-----\n{body}\n-----END {label}-----\n"


def _as_text(pem: Union[str, bytes]) -> str:
    if isinstance(pem, (bytes, bytearray)):
        try:
            pem = bytes(pem).decode('utf-8')
        except UnicodeDecodeError as e:
            raise BadPEM("PEM is not UTF-8 text.") from e
    return pem.replace("\r\n", "\n").replace("\r", "\n")


def find_pem_label(pem: Union[str, bytes]) -> str:
    """
    Return the label of the first BEGIN marker in pem.

    Raises:
        BadPEM: If no BEGIN marker is present
    """
    match = _PEM_BEGIN.search(_as_text(pem))
    if not match:
        raise BadPEM("No PEM BEGIN marker found.")
    return match.group(1)


def pem_decode(pem: Union[str, bytes], label: str) -> bytes:
    """
    Extract the DER body of a PEM block.

    Line endings may be CRLF or LF; any character outside the base64
    alphabet between the markers is discarded before decoding.

    Args:
        pem: PEM text (str or UTF-8 bytes)
        label: Expected PEM label

    Returns:
        DER bytes

    Raises:
        BadPEM: If markers are missing or the body does not decode
    """
    text = _as_text(pem)
    begin = f"-----BEGIN {label}-----"
    end = f"-----END {label}-----"

    start = text.find(begin)
    if start < 0:
        raise BadPEM(f"Missing '{begin}' marker.")
    stop = text.find(end, start + len(begin))
    if stop < 0:
        raise BadPEM(f"Missing '{end}' marker.")

    body = _NON_BASE64.sub("", text[start + len(begin):stop])
    try:
        der = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BadPEM(f"PEM body is not valid base64: {e}") from e
    if not der:
        raise BadPEM("PEM body is empty.")
    return der


# Test function for development
if __name__ == "__main__":
    print("[*] Testing DER codec")

    for n in (0, 127, 128, 255, 256, 65536):
        print(f"    encode_length({n}) = {encode_length(n).hex()}")

    alg = rsa_algorithm_identifier().encode()
    print(f"\n[1] AlgorithmIdentifier: {alg.hex()}")
    assert alg.hex() == "300d06092a864886f70d0101010500"
    assert decode(alg) == rsa_algorithm_identifier()

    pkcs1 = Sequence((Integer(0xC5), Integer(65537))).encode()
    spki = wrap_pkcs1_as_spki(pkcs1)
    pem = pem_encode(spki, "PUBLIC KEY")
    print(f"\n[2] PEM:\n{pem}")
    assert pem_decode(pem, "PUBLIC KEY") == spki

    print("[✓] DER codec test passed!")
