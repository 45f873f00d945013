"""
Helper signatures: now_iso_local, b64e, b64d, sha256_hex, wrap_in_3_lines.
"""

import base64
import binascii
import math
import re
from datetime import datetime
from hashlib import sha256

from reqsign.errors import MalformedBase64


_WHITESPACE = re.compile(r"\s+")
_B64_ALPHABET = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")


def now_iso_local() -> str:
    """
    Current local time as ISO-8601 with milliseconds and numeric offset,
    e.g. 2024-01-01T07:00:00.000+07:00.
    """
    return datetime.now().astimezone().isoformat(timespec="milliseconds")


def b64e(b: bytes) -> str:
    """
    Base64 encode bytes → standard-alphabet string.
    """
    return base64.b64encode(b).decode("ascii")


def b64d(s: str) -> bytes:
    """
    Tolerant Base64 decode.

    Accepts text pasted with line breaks or in the URL-safe alphabet:
    whitespace is stripped, '-' → '+', '_' → '/', and missing '=' padding
    is restored. Anything else outside the alphabet is rejected.
    """
    norm = _WHITESPACE.sub("", s or "").replace("-", "+").replace("_", "/")

    if not _B64_ALPHABET.match(norm):
        raise MalformedBase64("Base64 text contains characters outside the alphabet")

    body = norm.rstrip("=")
    if len(body) % 4 == 1:
        raise MalformedBase64("Base64 text has an impossible length")
    if "=" in norm and len(norm) % 4 != 0:
        raise MalformedBase64("Base64 text has invalid padding")

    padded = body + "=" * (-len(body) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except binascii.Error as e:
        raise MalformedBase64(f"Invalid Base64: {e}") from e


def sha256_hex(data: bytes) -> str:
    """
    SHA-256 digest as lowercase hex string (always 64 characters).
    """
    return sha256(data).hexdigest()


def wrap_in_3_lines(b64: str) -> str:
    """
    Split Base64 text into three roughly equal lines.

    Cosmetic only: b64d() of the result gives back the same bytes.
    """
    clean = _WHITESPACE.sub("", b64 or "")
    n = math.ceil(len(clean) / 3)
    parts = [clean[:n], clean[n:2 * n], clean[2 * n:]]
    return "\n".join(p for p in parts if p)
