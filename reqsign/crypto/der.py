"""
Minimal DER encoder.

Only what is needed to wrap a PKCS#1 RSA key into PKCS#8 / SPKI:
SEQUENCE, OCTET STRING, BIT STRING and the constant INTEGER 0.
read_node() is the inverse of node() and is used to inspect the output.
"""

TAG_INTEGER = 0x02
TAG_BIT_STRING = 0x03
TAG_OCTET_STRING = 0x04
TAG_NULL = 0x05
TAG_OID = 0x06
TAG_SEQUENCE = 0x30

# INTEGER 0 (PKCS#8 version field)
INTEGER_ZERO = bytes([TAG_INTEGER, 0x01, 0x00])


def length_prefix(n: int) -> bytes:
    """
    Short form for n < 128, otherwise 0x80|k followed by the k
    big-endian bytes of n (k minimal, no leading zeros).
    """
    if n < 0:
        raise ValueError(f"DER length cannot be negative: {n}")
    if n < 0x80:
        return bytes([n])
    k = (n.bit_length() + 7) // 8
    if k > 0x7F:
        raise ValueError(f"DER length too large: {n}")
    return bytes([0x80 | k]) + n.to_bytes(k, "big")


def node(tag: int, content: bytes) -> bytes:
    if not 0 <= tag <= 0xFF:
        raise ValueError(f"DER tag must fit in one byte: {tag}")
    content = bytes(content)
    return bytes([tag]) + length_prefix(len(content)) + content


def sequence(*parts: bytes) -> bytes:
    return node(TAG_SEQUENCE, b"".join(parts))


def octet_string(data: bytes) -> bytes:
    return node(TAG_OCTET_STRING, data)


def bit_string(data: bytes) -> bytes:
    # leading 0x00: zero unused bits
    return node(TAG_BIT_STRING, b"\x00" + bytes(data))


# ----------------------------------------------------------
# Parsing (inverse of node)
# ----------------------------------------------------------

def read_length(data: bytes, offset: int = 0):
    """
    Parse a length prefix at `offset`.
    Returns (length, offset_after_prefix).
    """
    if offset >= len(data):
        raise ValueError("Truncated DER: missing length")

    first = data[offset]
    offset += 1
    if first < 0x80:
        return first, offset

    k = first & 0x7F
    if k == 0:
        raise ValueError("Indefinite DER length is not allowed")
    if offset + k > len(data):
        raise ValueError("Truncated DER: long-form length")

    raw = data[offset:offset + k]
    if raw[0] == 0:
        raise ValueError("Non-minimal DER length (leading zero byte)")
    n = int.from_bytes(raw, "big")
    if n < 0x80:
        raise ValueError("Non-minimal DER length (long form for short value)")
    return n, offset + k


def read_node(data: bytes):
    """
    Parse one TLV from the start of `data`.
    Returns (tag, content, rest).
    """
    data = bytes(data)
    if not data:
        raise ValueError("Truncated DER: missing tag")

    tag = data[0]
    length, start = read_length(data, 1)
    end = start + length
    if end > len(data):
        raise ValueError(f"Truncated DER: declared {length} bytes, have {len(data) - start}")
    return tag, data[start:end], data[end:]


def children(content: bytes):
    """Yield (tag, content) for every TLV inside a constructed node."""
    rest = bytes(content)
    while rest:
        tag, value, rest = read_node(rest)
        yield tag, value
