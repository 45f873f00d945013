"""
Shared fixtures: one 2048-bit RSA key per session, in every PEM encoding
the adapter accepts.
"""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from reqsign.canonical import CanonicalRequest
from reqsign.crypto.pycrypto import PycryptodomePrimitive
from reqsign.crypto.sign import CryptographyPrimitive


SAMPLE_PAYLOAD = '{"partnerReferenceNo":"1234567890","amount":10000,"currency":"IDR"}'
SAMPLE_HASH = "57f10db4c1ccb834fbd779275a793b487a8904b987c909337f1270965063ba5a"


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _private_pem(key, fmt) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=fmt,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


def _public_pem(key, fmt) -> str:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=fmt,
    ).decode()


@pytest.fixture(scope="session")
def pkcs8_private_pem(rsa_key):
    return _private_pem(rsa_key, serialization.PrivateFormat.PKCS8)


@pytest.fixture(scope="session")
def pkcs1_private_pem(rsa_key):
    return _private_pem(rsa_key, serialization.PrivateFormat.TraditionalOpenSSL)


@pytest.fixture(scope="session")
def spki_public_pem(rsa_key):
    return _public_pem(rsa_key, serialization.PublicFormat.SubjectPublicKeyInfo)


@pytest.fixture(scope="session")
def pkcs1_public_pem(rsa_key):
    return _public_pem(rsa_key, serialization.PublicFormat.PKCS1)


@pytest.fixture(scope="session")
def pkcs1_private_der(rsa_key):
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def pkcs1_public_der(rsa_key):
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.PKCS1,
    )


@pytest.fixture(params=[CryptographyPrimitive, PycryptodomePrimitive], ids=["cryptography", "pycryptodome"])
def primitive(request):
    return request.param()


@pytest.fixture
def sample_request():
    return CanonicalRequest(
        http_method="POST",
        endpoint="/v1/qris/create",
        payload=SAMPLE_PAYLOAD,
        timestamp="2024-01-01T00:00:00+07:00",
    )
