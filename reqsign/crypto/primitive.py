"""
Cryptographic primitive interface.

The signing core never does RSA or SHA-256 itself. It talks to a
CryptoPrimitive, which a backend implements on top of a real crypto
library:

    - CryptographyPrimitive (reqsign.crypto.sign)      pyca/cryptography
    - PycryptodomePrimitive  (reqsign.crypto.pycrypto)  pycryptodome

Algorithm is fixed to RSASSA-PKCS1-v1_5 with SHA-256.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Tuple

from reqsign.crypto import der
from reqsign.errors import KeyImportFailed, SignFailed, VerifyFailed


ALGORITHM = "RSASSA-PKCS1-v1_5"
HASH_ALGORITHM = "SHA-256"

USAGE_SIGN = "sign"
USAGE_VERIFY = "verify"

# import formats
FORMAT_PKCS8 = "pkcs8"
FORMAT_SPKI = "spki"
# export-only: raw RSAPrivateKey / RSAPublicKey
FORMAT_PKCS1 = "pkcs1"

DEFAULT_MODULUS_LENGTH = 2048
DEFAULT_PUBLIC_EXPONENT = 65537


@dataclass(frozen=True)
class KeyHandle:
    """
    A key imported into (or generated by) a primitive.

    Attributes:
        key: backend-specific key object
        usage: "sign" for private keys, "verify" for public keys
        extractable: whether export_key() may serialize it
    """
    key: Any
    usage: str
    extractable: bool = False

    @property
    def is_private(self) -> bool:
        return self.usage == USAGE_SIGN

    def __repr__(self) -> str:
        # never print key material
        return f"KeyHandle(usage={self.usage!r}, extractable={self.extractable})"


class CryptoPrimitive(ABC):
    """Capability the core delegates all cryptography to."""

    name = "abstract"

    @abstractmethod
    def digest(self, algorithm: str, data: bytes) -> bytes:
        """Hash `data`; only SHA-256 is required."""

    @abstractmethod
    def _import(self, fmt: str, key_der: bytes) -> Any:
        """Backend key object for container-checked PKCS#8 / SPKI DER."""

    @abstractmethod
    def _sign(self, key: Any, data: bytes) -> bytes:
        ...

    @abstractmethod
    def _verify(self, key: Any, signature: bytes, data: bytes) -> bool:
        ...

    @abstractmethod
    def generate_keypair(
        self,
        modulus_length: int = DEFAULT_MODULUS_LENGTH,
        public_exponent: int = DEFAULT_PUBLIC_EXPONENT,
    ) -> Tuple[KeyHandle, KeyHandle]:
        """Return (private_handle, public_handle), both extractable."""

    @abstractmethod
    def export_key(self, fmt: str, handle: KeyHandle) -> bytes:
        """Serialize an extractable handle as pkcs8 / spki / pkcs1 DER."""

    def import_key(self, fmt: str, key_der: bytes, usage: str, extractable: bool = False) -> KeyHandle:
        """
        fmt="pkcs8" → private key, usage must be "sign"
        fmt="spki"  → public key, usage must be "verify"

        Raw PKCS#1 is refused here even though both libraries would load
        it: callers are expected to wrap it first.
        """
        if (fmt, usage) not in ((FORMAT_PKCS8, USAGE_SIGN), (FORMAT_SPKI, USAGE_VERIFY)):
            raise KeyImportFailed(f"Cannot import '{fmt}' key for '{usage}'")
        check_container(fmt, key_der)
        return KeyHandle(key=self._import(fmt, key_der), usage=usage, extractable=extractable)

    def sign(self, handle: KeyHandle, data: bytes) -> bytes:
        """
        RSASSA-PKCS1-v1_5 / SHA-256 signature over `data`.
        """
        if handle.usage != USAGE_SIGN:
            raise SignFailed("Key was not imported for signing")
        return self._sign(handle.key, data)

    def verify(self, handle: KeyHandle, signature: bytes, data: bytes) -> bool:
        """
        True if `signature` matches `data`, False on a clean mismatch.
        Raises VerifyFailed only for primitive-level problems.
        """
        if handle.usage != USAGE_VERIFY:
            raise VerifyFailed("Key was not imported for verification")
        return self._verify(handle.key, signature, data)


def check_container(fmt: str, data: bytes):
    """
    Outer shape only:
        PrivateKeyInfo       SEQUENCE { INTEGER, SEQUENCE, OCTET STRING, ... }
        SubjectPublicKeyInfo SEQUENCE { SEQUENCE, BIT STRING }
    """
    try:
        tag, content, rest = der.read_node(data)
        tags = [t for t, _ in der.children(content)] if tag == der.TAG_SEQUENCE else []
    except ValueError as e:
        raise KeyImportFailed(f"{fmt} DER is malformed: {e}") from e

    if fmt == FORMAT_PKCS8:
        expected = [der.TAG_INTEGER, der.TAG_SEQUENCE, der.TAG_OCTET_STRING]
        ok = tags[:3] == expected
    else:
        expected = [der.TAG_SEQUENCE, der.TAG_BIT_STRING]
        ok = tags == expected
    if not ok or rest:
        raise KeyImportFailed(f"DER is not a {fmt} container")


def check_hash_algorithm(algorithm: str):
    if algorithm.upper().replace("-", "") != "SHA256":
        raise ValueError(f"Unsupported digest algorithm: {algorithm}")


_BACKENDS = {}


def register_backend(name: str, factory):
    _BACKENDS[name] = factory


def get_primitive(name: str = None) -> CryptoPrimitive:
    """
    Return a backend by name ("cryptography" or "pycryptodome").
    Defaults to REQSIGN_BACKEND from the environment / .env.
    """
    # backends register themselves on import
    from reqsign.crypto import pycrypto, sign  # noqa: F401
    from reqsign import config

    name = (name or config.BACKEND).lower()
    try:
        factory = _BACKENDS[name]
    except KeyError:
        raise ValueError(f"Unknown crypto backend '{name}' (known: {', '.join(sorted(_BACKENDS))})")
    return factory()
