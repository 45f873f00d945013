"""
Error taxonomy for request signing.

Every failure the library can report is a SigningError subclass with a
stable `code`, so callers can render a specific message without parsing text.
"""


class SigningError(Exception):
    code = "signing_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class InvalidJson(SigningError, ValueError):
    """Payload is not syntactically valid JSON."""
    code = "invalid_json"


class InvalidMetadata(SigningError, ValueError):
    """HTTP method, endpoint or timestamp failed its format check."""
    code = "invalid_metadata"

    def __init__(self, message: str = "", field: str = None):
        super().__init__(message)
        self.field = field


class MalformedPem(SigningError, ValueError):
    """No BEGIN marker, or the PEM body is not Base64."""
    code = "malformed_pem"


class UnsupportedKeyFormat(SigningError):
    """PEM label is neither a recognised RSA private nor public key."""
    code = "unsupported_key_format"


class KeyImportFailed(SigningError):
    """The cryptographic primitive rejected the DER key."""
    code = "key_import_failed"


class MalformedBase64(SigningError, ValueError):
    """Signature text could not be Base64-decoded."""
    code = "malformed_base64"


class SignFailed(SigningError):
    code = "sign_failed"


class VerifyFailed(SigningError):
    """Primitive-level failure. A signature mismatch is NOT this error."""
    code = "verify_failed"
