"""
Signing / verification orchestrator.

    sign:   canonical → import private key → sign → Base64
    verify: canonical → import public key → decode Base64 → verify

Both flows are stateless: every call builds its own canonical string and
imports its own key handle. Failures are returned as results, never
retried; result.unwrap() re-raises them.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from reqsign import config
from reqsign.canonical import CanonicalPreview, CanonicalRequest, preview_request
from reqsign.common.utils import b64d, b64e, wrap_in_3_lines
from reqsign.crypto.keys import (
    export_private_pem,
    export_public_pem,
    import_private_key,
    import_public_key,
)
from reqsign.crypto.primitive import CryptoPrimitive, get_primitive
from reqsign.errors import SigningError

logger = logging.getLogger(__name__)


# step names, recorded on failure
STEP_BUILD_CANONICAL = "build_canonical"
STEP_IMPORT_PRIVATE_KEY = "import_private_key"
STEP_IMPORT_PUBLIC_KEY = "import_public_key"
STEP_DECODE_SIGNATURE = "decode_signature"
STEP_SIGN = "sign"
STEP_VERIFY = "verify"


@dataclass
class _Result:
    success: bool
    preview: Optional[CanonicalPreview] = None
    error: Optional[SigningError] = None
    failed_step: Optional[str] = None

    @property
    def minified_json(self) -> Optional[str]:
        return self.preview.minified_json if self.preview else None

    @property
    def body_hash_hex(self) -> Optional[str]:
        return self.preview.body_hash_hex if self.preview else None

    @property
    def canonical_string(self) -> Optional[str]:
        return self.preview.canonical_string if self.preview else None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    def _base_dict(self) -> dict:
        out = self.preview.to_dict() if self.preview else {}
        if self.error is not None:
            out.update(self.error.to_dict())
            out["step"] = self.failed_step
        return out


@dataclass
class SignResult(_Result):
    """
    Result of sign().

    Attributes:
        success: whether a signature was produced
        signature_b64: standard Base64 signature (3 lines if requested)
        preview: minified JSON / body hash / canonical string, when built
        error: SigningError if a step failed
        failed_step: name of the failing step
    """
    signature_b64: Optional[str] = None

    @classmethod
    def ok(cls, preview: CanonicalPreview, signature_b64: str) -> "SignResult":
        return cls(success=True, preview=preview, signature_b64=signature_b64)

    @classmethod
    def fail(cls, step: str, error: SigningError, preview: CanonicalPreview = None) -> "SignResult":
        return cls(success=False, preview=preview, error=error, failed_step=step)

    def unwrap(self) -> str:
        if not self.success:
            raise self.error
        return self.signature_b64

    def to_dict(self) -> dict:
        out = self._base_dict()
        if self.success:
            out["signatureBase64"] = self.signature_b64
        return out


@dataclass
class VerifyResult(_Result):
    """
    Result of verify().

    success=True, valid=False is a normal outcome: the signature simply
    does not match. Errors (bad key, bad Base64, bad JSON) set success=False.
    """
    valid: bool = False

    @classmethod
    def ok(cls, preview: CanonicalPreview, valid: bool) -> "VerifyResult":
        return cls(success=True, preview=preview, valid=valid)

    @classmethod
    def fail(cls, step: str, error: SigningError, preview: CanonicalPreview = None) -> "VerifyResult":
        return cls(success=False, preview=preview, error=error, failed_step=step)

    def unwrap(self) -> bool:
        if not self.success:
            raise self.error
        return self.valid

    def to_dict(self) -> dict:
        out = self._base_dict()
        if self.success:
            out["valid"] = self.valid
        return out


@dataclass(frozen=True)
class KeyPairPem:
    private_pem: str
    public_pem: str


# ----------------------------------------------------------
# Flows
# ----------------------------------------------------------

def sign(
    request: CanonicalRequest,
    private_pem: str,
    primitive: CryptoPrimitive = None,
    three_lines: bool = False,
) -> SignResult:
    """
    Sign the canonical string of `request` with a PKCS#8 or PKCS#1 private key.

    Example:
        >>> result = sign(request, private_pem)
        >>> if result.success:
        ...     headers["X-SIGNATURE"] = result.signature_b64
        ... else:
        ...     show(result.error_message)
    """
    primitive = primitive or get_primitive()

    step = STEP_BUILD_CANONICAL
    prev = None
    try:
        prev = preview_request(request, primitive)

        step = STEP_IMPORT_PRIVATE_KEY
        key = import_private_key(private_pem, primitive)

        step = STEP_SIGN
        signature = primitive.sign(key, prev.canonical_string.encode("utf-8"))
    except SigningError as e:
        logger.warning("Sign failed at %s: %s", step, e.message)
        return SignResult.fail(step, e, prev)

    signature_b64 = b64e(signature)
    if three_lines:
        signature_b64 = wrap_in_3_lines(signature_b64)

    logger.debug("Signed %s (%d-byte signature)", prev.canonical_string, len(signature))
    return SignResult.ok(prev, signature_b64)


def verify(
    request: CanonicalRequest,
    public_pem: str,
    signature_b64: str,
    primitive: CryptoPrimitive = None,
) -> VerifyResult:
    """
    Check `signature_b64` against the canonical string of `request`.
    The signature may be wrapped, padded or not, standard or URL-safe Base64.
    """
    primitive = primitive or get_primitive()

    step = STEP_BUILD_CANONICAL
    prev = None
    try:
        prev = preview_request(request, primitive)

        step = STEP_IMPORT_PUBLIC_KEY
        key = import_public_key(public_pem, primitive)

        step = STEP_DECODE_SIGNATURE
        signature = b64d(signature_b64)

        step = STEP_VERIFY
        valid = primitive.verify(key, signature, prev.canonical_string.encode("utf-8"))
    except SigningError as e:
        logger.warning("Verify failed at %s: %s", step, e.message)
        return VerifyResult.fail(step, e, prev)

    logger.debug("Signature %s for %s", "valid" if valid else "INVALID", prev.canonical_string)
    return VerifyResult.ok(prev, valid)


def generate_demo_keypair(
    primitive: CryptoPrimitive = None,
    single_line: bool = None,
    modulus_length: int = None,
    pkcs1: bool = False,
) -> KeyPairPem:
    """
    Fresh RSA keypair (65537, default 2048 bits) as PEM text:
    PKCS#8 + SPKI, or RSA PRIVATE KEY + RSA PUBLIC KEY when pkcs1=True.
    """
    primitive = primitive or get_primitive()
    single_line = config.PEM_SINGLE_LINE if single_line is None else single_line
    modulus_length = modulus_length or config.KEY_SIZE

    private_handle, public_handle = primitive.generate_keypair(modulus_length=modulus_length)
    logger.debug("Generated %d-bit RSA keypair with %s", modulus_length, primitive.name)
    return KeyPairPem(
        private_pem=export_private_pem(private_handle, primitive, single_line, pkcs1),
        public_pem=export_public_pem(public_handle, primitive, single_line, pkcs1),
    )
