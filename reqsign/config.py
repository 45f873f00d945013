"""
reqsign configuration.

Values come from the environment, optionally loaded from a .env file in
the working directory. CLI flags override them.
"""

import os

from dotenv import load_dotenv


# ----------------------------------------------------------
# Load configuration from .env
# ----------------------------------------------------------

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


BACKEND = os.getenv("REQSIGN_BACKEND", "cryptography")
PEM_SINGLE_LINE = _env_bool("REQSIGN_PEM_SINGLE_LINE", True)
SIGNATURE_3_LINES = _env_bool("REQSIGN_SIGNATURE_3_LINES", False)
KEY_SIZE = int(os.getenv("REQSIGN_KEY_SIZE", "2048"))
LOG_LEVEL = os.getenv("REQSIGN_LOG_LEVEL", "WARNING").upper()
