"""
PEM armoring: strip / add the -----BEGIN <label>----- framing.

Decoding goes through our own Base64 path instead of the cryptography
loaders so that single-line PEM bodies (as produced by web tools) and
PKCS#1 blocks that still need wrapping are both accepted.
"""

import re

from reqsign.common.utils import b64d, b64e
from reqsign.errors import MalformedBase64, MalformedPem


PEM_LINE_WIDTH = 64

_BEGIN_LABEL = re.compile(r"-----BEGIN ([^-]+)-----")
_BEGIN_LINE = re.compile(r"-----BEGIN [^-]+-----")
_END_LINE = re.compile(r"-----END [^-]+-----")


def pem_label(text: str) -> str:
    """
    Label of the first BEGIN marker, or "" when there is none.
    """
    m = _BEGIN_LABEL.search(text or "")
    return m.group(1).strip() if m else ""


def decode_pem(text: str):
    """
    Return (label, der_bytes) for PEM text.

    All BEGIN/END lines and all whitespace are removed before decoding,
    so wrapped and single-line bodies decode the same.
    """
    label = pem_label(text)
    if not label:
        raise MalformedPem("No -----BEGIN <label>----- marker found")

    body = _BEGIN_LINE.sub("", text)
    body = _END_LINE.sub("", body)

    try:
        der = b64d(body)
    except MalformedBase64 as e:
        raise MalformedPem(f"PEM body is not valid Base64: {e.message}") from e

    if not der:
        raise MalformedPem(f"PEM block '{label}' has an empty body")

    return label, der


def encode_pem(label: str, data: bytes, single_line: bool = False) -> str:
    """
    -----BEGIN <label>-----
    <base64, one line or wrapped at 64 chars>
    -----END <label>-----
    """
    b64 = b64e(data)
    if single_line:
        payload = b64
    else:
        payload = "\n".join(b64[i:i + PEM_LINE_WIDTH] for i in range(0, len(b64), PEM_LINE_WIDTH))
    return f"-----BEGIN {label}-----\n{payload}\n-----END {label}-----"
