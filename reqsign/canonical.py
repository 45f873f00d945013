"""
Canonical request string.

Canonical Request Format:
    {METHOD}:{endpoint}:{body_hash}:{timestamp}

Where:
    - METHOD: HTTP method, upper-cased
    - endpoint: request path, verbatim (e.g. /v1/qris/create)
    - body_hash: lowercase SHA-256 hex of the minified JSON payload
    - timestamp: ISO-8601 with offset or Z, verbatim

The payload is minified, NOT key-sorted: signer and verifier must feed
the same JSON text (same key order) to get the same string.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from reqsign.common.utils import sha256_hex
from reqsign.errors import InvalidJson, InvalidMetadata

logger = logging.getLogger(__name__)


METHOD_PATTERN = re.compile(r"[A-Z]+")
TIMESTAMP_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?([+\-]\d{2}:\d{2}|Z)\Z")
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


@dataclass(frozen=True)
class CanonicalRequest:
    """
    Inputs of one sign or verify call.

    Attributes:
        http_method: e.g. "POST"
        endpoint: path starting with "/"
        payload: JSON text
        timestamp: e.g. "2024-01-01T00:00:00+07:00"
    """
    http_method: str
    endpoint: str
    payload: str
    timestamp: str

    def validate(self):
        """
        Pre-flight check. Raises InvalidJson or InvalidMetadata.
        The builder itself never validates metadata.
        """
        minify_json(self.payload)
        if not self.http_method or not METHOD_PATTERN.fullmatch(self.http_method):
            raise InvalidMetadata(f"Invalid HTTP method: '{self.http_method}'", field="http_method")
        if not self.endpoint or not self.endpoint.startswith("/"):
            raise InvalidMetadata(f"Endpoint must start with '/': '{self.endpoint}'", field="endpoint")
        if not self.timestamp or not TIMESTAMP_PATTERN.search(self.timestamp):
            raise InvalidMetadata(f"Invalid ISO-8601 timestamp: '{self.timestamp}'", field="timestamp")
        return self


@dataclass(frozen=True)
class CanonicalPreview:
    minified_json: str
    body_hash_hex: str
    canonical_string: str

    def to_dict(self) -> dict:
        return {
            "minifiedJson": self.minified_json,
            "bodyHashHex": self.body_hash_hex,
            "canonicalString": self.canonical_string,
        }


@dataclass(frozen=True)
class Validity:
    json_ok: bool
    meta_ok: bool

    @property
    def all_ok(self) -> bool:
        return self.json_ok and self.meta_ok


# ----------------------------------------------------------
# JSON
# ----------------------------------------------------------

def _reject_constant(name):
    raise ValueError(f"{name} is not valid JSON")


def minify_json(text: str) -> str:
    """
    Strict parse, then re-serialize without whitespace.

    Key order is kept as parsed; non-ASCII characters stay literal.

    >>> minify_json('{ "a": 1,\\n "b": 2 }')
    '{"a":1,"b":2}'
    """
    if not isinstance(text, str):
        raise InvalidJson(f"Payload must be JSON text, got {type(text).__name__}")
    try:
        obj = json.loads(text, parse_constant=_reject_constant)
        minified = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except ValueError as e:
        raise InvalidJson(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise InvalidJson("Invalid JSON: payload nests too deeply") from e
    # lone surrogates cannot be UTF-8 encoded; keep them as \uXXXX escapes
    return _LONE_SURROGATE.sub(lambda m: "\\u%04x" % ord(m.group()), minified)


# ----------------------------------------------------------
# Hash + canonical string
# ----------------------------------------------------------

def sha256_hex_lower(data: bytes, primitive=None) -> str:
    """
    Lowercase SHA-256 hex (64 chars). Uses the primitive's digest when given.
    """
    if primitive is None:
        return sha256_hex(data)
    return primitive.digest("SHA-256", data).hex()


def preview(method: str, endpoint: str, payload_text: str, timestamp: str,
            primitive=None) -> CanonicalPreview:
    minified = minify_json(payload_text)
    body_hash_hex = sha256_hex_lower(minified.encode("utf-8"), primitive)
    content = f"{str(method or '').upper()}:{endpoint}:{body_hash_hex}:{timestamp}"
    logger.debug("Canonical string built: %s", content)
    return CanonicalPreview(minified_json=minified, body_hash_hex=body_hash_hex, canonical_string=content)


def build_canonical(method: str, endpoint: str, payload_text: str, timestamp: str,
                    primitive=None) -> str:
    """
    Create the canonical request string for signing/verification.

    Example:
        >>> build_canonical("post", "/v1/ping", '{"a": 1}', "2024-01-01T00:00:00Z")
        'POST:/v1/ping:015abd7f5cc57a2dd94b7590f04ad8084273905ee33ec5cebeae62276a97f862:2024-01-01T00:00:00Z'
    """
    return preview(method, endpoint, payload_text, timestamp, primitive).canonical_string


def preview_request(request: CanonicalRequest, primitive=None) -> CanonicalPreview:
    return preview(request.http_method, request.endpoint, request.payload, request.timestamp, primitive)


def check_validity(request: CanonicalRequest, key_pem: Optional[str], is_sign: bool = True) -> Validity:
    """
    Non-raising pre-flight check a caller runs before enabling sign/verify.

    meta_ok covers method, endpoint, timestamp and the presence of a
    PEM key block (PRIVATE KEY when signing, PUBLIC KEY when verifying).
    """
    try:
        minify_json(request.payload)
        json_ok = True
    except InvalidJson:
        json_ok = False

    try:
        CanonicalRequest(request.http_method, request.endpoint, "null", request.timestamp).validate()
        meta_ok = True
    except InvalidMetadata:
        meta_ok = False

    wanted = "PRIVATE KEY" if is_sign else "PUBLIC KEY"
    key_ok = bool(key_pem) and wanted in key_pem

    return Validity(json_ok=json_ok, meta_ok=meta_ok and key_ok)
