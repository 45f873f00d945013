"""RSA PKCS#1 v1.5 SHA-256 helpers on pycryptodome (alternative backend)."""

import logging

from Crypto.Hash import SHA256
from Crypto.IO import PKCS8
from Crypto.PublicKey import RSA
from Crypto.Signature import pkcs1_15
from Crypto.Util.asn1 import DerSequence

from reqsign.crypto.primitive import (
    CryptoPrimitive,
    KeyHandle,
    FORMAT_PKCS1,
    FORMAT_PKCS8,
    FORMAT_SPKI,
    USAGE_SIGN,
    USAGE_VERIFY,
    DEFAULT_MODULUS_LENGTH,
    DEFAULT_PUBLIC_EXPONENT,
    check_hash_algorithm,
    register_backend,
)
from reqsign.errors import KeyImportFailed, SignFailed, VerifyFailed

logger = logging.getLogger(__name__)

RSA_ENCRYPTION_OID = "1.2.840.113549.1.1.1"


class PycryptodomePrimitive(CryptoPrimitive):
    name = "pycryptodome"

    def digest(self, algorithm: str, data: bytes) -> bytes:
        check_hash_algorithm(algorithm)
        return SHA256.new(data).digest()

    def _import(self, fmt: str, key_der: bytes):
        try:
            if fmt == FORMAT_PKCS8:
                oid, inner, _params = PKCS8.unwrap(key_der)
                if oid != RSA_ENCRYPTION_OID:
                    raise KeyImportFailed(f"PKCS#8 algorithm {oid} is not rsaEncryption")
                key = RSA.import_key(inner)
                if not key.has_private():
                    raise KeyImportFailed("PKCS#8 payload is not an RSA private key")
            else:
                key = RSA.import_key(key_der)
                if key.has_private():
                    raise KeyImportFailed("SPKI payload unexpectedly holds a private key")
        except (ValueError, IndexError, TypeError) as e:
            raise KeyImportFailed(f"{fmt} import rejected: {e}") from e

        logger.debug("Imported %s key (%d bits)", fmt, key.size_in_bits())
        return key

    def _sign(self, key, data: bytes) -> bytes:
        try:
            return pkcs1_15.new(key).sign(SHA256.new(data))
        except (ValueError, TypeError) as e:
            raise SignFailed(f"RSA sign failed: {e}") from e

    def _verify(self, key, signature: bytes, data: bytes) -> bool:
        try:
            pkcs1_15.new(key).verify(SHA256.new(data), signature)
            return True
        except ValueError:
            # pycryptodome signals any mismatch (including wrong length) this way
            return False
        except TypeError as e:
            raise VerifyFailed(f"RSA verify failed: {e}") from e

    def generate_keypair(self, modulus_length: int = DEFAULT_MODULUS_LENGTH,
                         public_exponent: int = DEFAULT_PUBLIC_EXPONENT):
        key = RSA.generate(modulus_length, e=public_exponent)
        return (
            KeyHandle(key=key, usage=USAGE_SIGN, extractable=True),
            KeyHandle(key=key.publickey(), usage=USAGE_VERIFY, extractable=True),
        )

    def export_key(self, fmt: str, handle: KeyHandle) -> bytes:
        if not handle.extractable:
            raise ValueError("Key handle is not extractable")

        key = handle.key
        if handle.is_private:
            if fmt == FORMAT_PKCS8:
                return key.export_key(format="DER", pkcs=8)
            if fmt == FORMAT_PKCS1:
                return key.export_key(format="DER", pkcs=1)
            raise ValueError(f"Cannot export private key as '{fmt}'")

        if fmt == FORMAT_SPKI:
            return key.export_key(format="DER")
        if fmt == FORMAT_PKCS1:
            # RSAPublicKey ::= SEQUENCE { modulus, publicExponent }
            return DerSequence([key.n, key.e]).encode()
        raise ValueError(f"Cannot export public key as '{fmt}'")


register_backend(PycryptodomePrimitive.name, PycryptodomePrimitive)
