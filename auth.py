"""
Password hashing and bearer token issuance.

Passwords are hashed with PBKDF2-HMAC-SHA256. The stored string carries
the algorithm, the iteration count and the salt so the work factor can be
raised later without invalidating existing hashes::

    pbkdf2_sha256$100000$<salt hex>$<hash hex>

Tokens are HS256 JSON Web Tokens signed with ``settings.jwt_secret``. The
same token is returned in the login body and set as the ``authToken``
cookie, and it always carries an ``exp`` claim.
"""

import base64
import hashlib
import hmac
import json
import os
import re
import time
from typing import Dict, Optional

from config import settings

HASH_ALGORITHM = "pbkdf2_sha256"
COOKIE_NAME = "authToken"
COOKIE_MAX_AGE = 24 * 60 * 60

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    iterations = iterations or settings.password_hash_iterations
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{HASH_ALGORITHM}${iterations}${salt.hex()}${dk.hex()}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Check ``password`` against a hash produced by ``hash_password``.

    Malformed or foreign hashes never verify.
    """
    try:
        algorithm, iterations, salt_hex, hash_hex = stored_hash.split("$")
        if algorithm != HASH_ALGORITHM:
            return False
        dk = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), int(iterations)
        )
        return hmac.compare_digest(dk, bytes.fromhex(hash_hex))
    except (AttributeError, ValueError):
        return False


# Checked against when the email is unknown, so both login failures cost one PBKDF2 run.
_UNKNOWN_USER_HASH = hash_password(os.urandom(16).hex())


def check_login(password: str, stored_hash: Optional[str]) -> bool:
    """Verify a login attempt; ``stored_hash`` is ``None`` for an unknown email."""
    if stored_hash is None:
        verify_password(password, _UNKNOWN_USER_HASH)
        return False
    return verify_password(password, stored_hash)


def parse_duration(value: str) -> int:
    """Convert ``"3600"``, ``"30s"``, ``"15m"``, ``"12h"`` or ``"1d"`` to seconds."""
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit.lower()]


def _segment(obj: Dict) -> str:
    raw = json.dumps(obj, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def create_access_token(email: str, expires_in: Optional[int] = None) -> str:
    """Issue a signed token whose subject is ``email``.

    ``expires_in`` is a lifetime in seconds and defaults to
    ``settings.expires_in``.
    """
    if expires_in is None:
        expires_in = parse_duration(settings.expires_in)
    issued_at = int(time.time())
    signing_input = ".".join([
        _segment({"alg": "HS256", "typ": "JWT"}),
        _segment({"sub": email, "iat": issued_at, "exp": issued_at + expires_in}),
    ])
    digest = hmac.new(settings.jwt_secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()
    signature = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return f"{signing_input}.{signature}"
