# reqsign/crypto/sign.py
"""RSA PKCS#1 v1.5 SHA-256 sign/verify on pyca/cryptography (default backend)."""

import logging

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric import rsa

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


class CryptographyPrimitive(CryptoPrimitive):
    name = "cryptography"

    def digest(self, algorithm: str, data: bytes) -> bytes:
        check_hash_algorithm(algorithm)
        h = hashes.Hash(hashes.SHA256())
        h.update(data)
        return h.finalize()

    def _import(self, fmt: str, key_der: bytes):
        try:
            if fmt == FORMAT_PKCS8:
                key = serialization.load_der_private_key(key_der, password=None)
                expected = rsa.RSAPrivateKey
            else:
                key = serialization.load_der_public_key(key_der)
                expected = rsa.RSAPublicKey
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyImportFailed(f"{fmt} import rejected: {e}") from e

        if not isinstance(key, expected):
            raise KeyImportFailed(f"Not an RSA key: {type(key).__name__}")

        logger.debug("Imported %s key (%d bits)", fmt, key.key_size)
        return key

    def _sign(self, key, data: bytes) -> bytes:
        try:
            return key.sign(
                data,
                padding.PKCS1v15(),
                hashes.SHA256()
            )
        except (ValueError, TypeError) as e:
            raise SignFailed(f"RSA sign failed: {e}") from e

    def _verify(self, key, signature: bytes, data: bytes) -> bool:
        try:
            key.verify(
                signature,
                data,
                padding.PKCS1v15(),
                hashes.SHA256()
            )
            return True
        except InvalidSignature:
            return False
        except (ValueError, TypeError) as e:
            raise VerifyFailed(f"RSA verify failed: {e}") from e

    def generate_keypair(self, modulus_length: int = DEFAULT_MODULUS_LENGTH,
                         public_exponent: int = DEFAULT_PUBLIC_EXPONENT):
        private_key = rsa.generate_private_key(public_exponent=public_exponent, key_size=modulus_length)
        return (
            KeyHandle(key=private_key, usage=USAGE_SIGN, extractable=True),
            KeyHandle(key=private_key.public_key(), usage=USAGE_VERIFY, extractable=True),
        )

    def export_key(self, fmt: str, handle: KeyHandle) -> bytes:
        if not handle.extractable:
            raise ValueError("Key handle is not extractable")

        if handle.is_private:
            formats = {
                FORMAT_PKCS8: serialization.PrivateFormat.PKCS8,
                FORMAT_PKCS1: serialization.PrivateFormat.TraditionalOpenSSL,  # PKCS#1
            }
            if fmt not in formats:
                raise ValueError(f"Cannot export private key as '{fmt}'")
            return handle.key.private_bytes(
                encoding=serialization.Encoding.DER,
                format=formats[fmt],
                encryption_algorithm=serialization.NoEncryption()
            )

        formats = {
            FORMAT_SPKI: serialization.PublicFormat.SubjectPublicKeyInfo,
            FORMAT_PKCS1: serialization.PublicFormat.PKCS1,
        }
        if fmt not in formats:
            raise ValueError(f"Cannot export public key as '{fmt}'")
        return handle.key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=formats[fmt]
        )


register_backend(CryptographyPrimitive.name, CryptographyPrimitive)
