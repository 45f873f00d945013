"""
RSA key format adapter.

Accepts private keys as PKCS#8 (BEGIN PRIVATE KEY) or PKCS#1
(BEGIN RSA PRIVATE KEY), and public keys as SPKI (BEGIN PUBLIC KEY) or
PKCS#1 (BEGIN RSA PUBLIC KEY). PKCS#1 blobs are wrapped into the
PKCS#8 / SPKI containers the primitive imports:

    PrivateKeyInfo       ::= SEQUENCE { INTEGER 0, AlgorithmIdentifier, OCTET STRING rsaKey }
    SubjectPublicKeyInfo ::= SEQUENCE { AlgorithmIdentifier, BIT STRING rsaPublicKey }
    AlgorithmIdentifier  ::= SEQUENCE { OID 1.2.840.113549.1.1.1, NULL }

The wrapped PKCS#1 bytes are never parsed here; a malformed key only
surfaces when the primitive refuses the container (KeyImportFailed).
"""

import logging
from dataclasses import dataclass
from enum import Enum

from reqsign.crypto import der
from reqsign.crypto.pem import decode_pem, encode_pem
from reqsign.crypto.primitive import (
    CryptoPrimitive,
    KeyHandle,
    FORMAT_PKCS1,
    FORMAT_PKCS8,
    FORMAT_SPKI,
    USAGE_SIGN,
    USAGE_VERIFY,
)
from reqsign.errors import UnsupportedKeyFormat

logger = logging.getLogger(__name__)


# OID 1.2.840.113549.1.1.1 (rsaEncryption)
OID_RSA_ENCRYPTION = bytes([0x06, 0x09, 0x2A, 0x86, 0x48, 0x86, 0xF7, 0x0D, 0x01, 0x01, 0x01])
NULL_PARAMS = bytes([0x05, 0x00])
RSA_ALGORITHM_IDENTIFIER = der.sequence(OID_RSA_ENCRYPTION, NULL_PARAMS)

LABEL_PKCS8_PRIVATE = "PRIVATE KEY"
LABEL_PKCS1_PRIVATE = "RSA PRIVATE KEY"
LABEL_SPKI_PUBLIC = "PUBLIC KEY"
LABEL_PKCS1_PUBLIC = "RSA PUBLIC KEY"


class KeyKind(Enum):
    PKCS1 = "pkcs1"
    PKCS8 = "pkcs8"
    SPKI = "spki"


@dataclass(frozen=True)
class KeyMaterial:
    """
    Decoded PEM block.

    Attributes:
        kind: encoding the DER uses
        label: label from the BEGIN line
        der: DER content
    """
    kind: KeyKind
    label: str
    der: bytes

    @property
    def needs_wrapping(self) -> bool:
        return self.kind == KeyKind.PKCS1

    def __repr__(self) -> str:
        return f"KeyMaterial(kind={self.kind.name}, label={self.label!r}, der=<{len(self.der)} bytes>)"


# ----------------------------------------------------------
# Classification
# ----------------------------------------------------------

# Algorithm-specific labels (EC, DSA, OPENSSH ...) are not PKCS#8 even though
# they end in "PRIVATE KEY"; only these qualifiers are.
_PKCS8_QUALIFIERS = ("", "ENCRYPTED")


def _qualifier(label: str, suffix: str):
    label = " ".join(label.split())
    if not label.endswith(suffix):
        return None
    return label[:-len(suffix)].strip()


def classify_private(label: str) -> KeyKind:
    if LABEL_PKCS1_PRIVATE in label:
        return KeyKind.PKCS1
    if _qualifier(label, LABEL_PKCS8_PRIVATE) in _PKCS8_QUALIFIERS:
        return KeyKind.PKCS8
    raise UnsupportedKeyFormat(
        f"Unsupported private key '{label}'. "
        f"Use BEGIN {LABEL_PKCS8_PRIVATE} (PKCS#8) or BEGIN {LABEL_PKCS1_PRIVATE} (PKCS#1)."
    )


def classify_public(label: str) -> KeyKind:
    if LABEL_PKCS1_PUBLIC in label:
        return KeyKind.PKCS1
    if _qualifier(label, LABEL_SPKI_PUBLIC) == "":
        return KeyKind.SPKI
    raise UnsupportedKeyFormat(
        f"Unsupported public key '{label}'. "
        f"Use BEGIN {LABEL_SPKI_PUBLIC} (SPKI) or BEGIN {LABEL_PKCS1_PUBLIC} (PKCS#1)."
    )


# ----------------------------------------------------------
# PKCS#1 → PKCS#8 / SPKI
# ----------------------------------------------------------

def wrap_pkcs1_private_to_pkcs8(rsa_der: bytes) -> bytes:
    return der.sequence(
        der.INTEGER_ZERO,
        RSA_ALGORITHM_IDENTIFIER,
        der.octet_string(rsa_der),
    )


def wrap_pkcs1_public_to_spki(rsa_pub_der: bytes) -> bytes:
    return der.sequence(
        RSA_ALGORITHM_IDENTIFIER,
        der.bit_string(rsa_pub_der),
    )


# ----------------------------------------------------------
# PEM → KeyMaterial → KeyHandle
# ----------------------------------------------------------

def load_private_key_material(pem: str) -> KeyMaterial:
    label, data = decode_pem(pem)
    return KeyMaterial(kind=classify_private(label), label=label, der=data)


def load_public_key_material(pem: str) -> KeyMaterial:
    label, data = decode_pem(pem)
    return KeyMaterial(kind=classify_public(label), label=label, der=data)


def import_private_key(pem: str, primitive: CryptoPrimitive) -> KeyHandle:
    """
    PEM (PKCS#8 or PKCS#1) → sign-only key handle.

    Raises:
        MalformedPem, UnsupportedKeyFormat, KeyImportFailed
    """
    material = load_private_key_material(pem)
    pkcs8 = wrap_pkcs1_private_to_pkcs8(material.der) if material.needs_wrapping else material.der
    logger.debug("Importing private key: %r", material)
    return primitive.import_key(FORMAT_PKCS8, pkcs8, usage=USAGE_SIGN)


def import_public_key(pem: str, primitive: CryptoPrimitive) -> KeyHandle:
    """
    PEM (SPKI or PKCS#1) → verify-only key handle.

    Raises:
        MalformedPem, UnsupportedKeyFormat, KeyImportFailed
    """
    material = load_public_key_material(pem)
    spki = wrap_pkcs1_public_to_spki(material.der) if material.needs_wrapping else material.der
    logger.debug("Importing public key: %r", material)
    return primitive.import_key(FORMAT_SPKI, spki, usage=USAGE_VERIFY)


# ----------------------------------------------------------
# KeyHandle → PEM
# ----------------------------------------------------------

def export_private_pem(handle: KeyHandle, primitive: CryptoPrimitive,
                       single_line: bool = False, pkcs1: bool = False) -> str:
    if pkcs1:
        return encode_pem(LABEL_PKCS1_PRIVATE, primitive.export_key(FORMAT_PKCS1, handle), single_line)
    return encode_pem(LABEL_PKCS8_PRIVATE, primitive.export_key(FORMAT_PKCS8, handle), single_line)


def export_public_pem(handle: KeyHandle, primitive: CryptoPrimitive,
                      single_line: bool = False, pkcs1: bool = False) -> str:
    if pkcs1:
        return encode_pem(LABEL_PKCS1_PUBLIC, primitive.export_key(FORMAT_PKCS1, handle), single_line)
    return encode_pem(LABEL_SPKI_PUBLIC, primitive.export_key(FORMAT_SPKI, handle), single_line)
