"""
Password Hashing and Token Handling

Passwords are stored as salted scrypt hashes in a self-describing text
format, so verification always reruns scrypt with the parameters the hash
was created with:

    scrypt$n=<n>$r=<r>$p=<p>$salt=<base64>$key=<base64>

Tokens are HS256 JWTs signed with `Settings.secret_key`. Every login issues
an access token carrying the caller's identity and a refresh token that can
only be exchanged for a new pair.

Version: 1.0.0
"""

import base64
import hashlib
import hmac
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from restaurant_api.core.config import get_settings

SCRYPT_PARAMS = {"n": 2 ** 14, "r": 8, "p": 1}
SALT_LENGTH_BYTES = 16
KEY_LENGTH_BYTES = 32
SCRYPT_MAXMEM = 64 * 1024 * 1024

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


class InvalidTokenError(Exception):
    """Raised when a token is malformed, expired, or of the wrong type."""


@dataclass
class TokenClaims:
    """Identity carried by a validated token."""
    uid: str
    user_type: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    token_type: str = ACCESS_TOKEN

    @property
    def is_admin(self) -> bool:
        return self.user_type == "ADMIN"


# =============================================================================
# PASSWORDS
# =============================================================================

def _scrypt(plaintext: str, salt: bytes, n: int, r: int, p: int, dklen: int) -> bytes:
    return hashlib.scrypt(
        plaintext.encode("utf-8"),
        salt=salt,
        n=n,
        r=r,
        p=p,
        maxmem=SCRYPT_MAXMEM,
        dklen=dklen,
    )


def hash_password(plaintext: str) -> str:
    """Hash a plaintext password with a fresh random salt."""
    salt = os.urandom(SALT_LENGTH_BYTES)
    key = _scrypt(plaintext, salt, dklen=KEY_LENGTH_BYTES, **SCRYPT_PARAMS)
    salt_b64 = base64.b64encode(salt).decode("ascii")
    key_b64 = base64.b64encode(key).decode("ascii")
    return (
        f"scrypt$n={SCRYPT_PARAMS['n']}$r={SCRYPT_PARAMS['r']}"
        f"$p={SCRYPT_PARAMS['p']}$salt={salt_b64}$key={key_b64}"
    )


def verify_password(plaintext: str, stored_hash: str) -> bool:
    """
    Check a plaintext password against a stored hash.

    Returns False for malformed hashes instead of raising.
    """
    try:
        scheme, n_part, r_part, p_part, salt_part, key_part = stored_hash.split("$")
        if scheme != "scrypt":
            return False
        n = int(n_part.split("=", 1)[1])
        r = int(r_part.split("=", 1)[1])
        p = int(p_part.split("=", 1)[1])
        salt = base64.b64decode(salt_part.split("=", 1)[1])
        expected = base64.b64decode(key_part.split("=", 1)[1])
        # Out-of-range cost parameters are rejected by hashlib itself
        derived = _scrypt(plaintext, salt, n=n, r=r, p=p, dklen=len(expected))
    except (ValueError, IndexError, AttributeError, OverflowError, MemoryError):
        return False

    return hmac.compare_digest(derived, expected)


# =============================================================================
# TOKENS
# =============================================================================

def generate_all_tokens(
    email: str,
    first_name: str,
    last_name: str,
    user_type: str,
    uid: str,
) -> tuple[str, str]:
    """
    Issue an access token and a refresh token for a user.

    Returns:
        (access_token, refresh_token)
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)

    access_claims = {
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "uid": uid,
        "user_type": user_type,
        "token_type": ACCESS_TOKEN,
        "iat": now,
        "exp": now + timedelta(hours=settings.access_token_hours),
    }
    refresh_claims = {
        "uid": uid,
        "token_type": REFRESH_TOKEN,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(hours=settings.refresh_token_hours),
    }

    token = jwt.encode(access_claims, settings.secret_key, algorithm=JWT_ALGORITHM)
    refresh_token = jwt.encode(refresh_claims, settings.secret_key, algorithm=JWT_ALGORITHM)
    return token, refresh_token


def validate_token(signed_token: str, expected_type: str = ACCESS_TOKEN) -> TokenClaims:
    """
    Verify a token's signature, expiry and type.

    Raises:
        InvalidTokenError: If the token cannot be trusted
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            signed_token,
            settings.secret_key,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "uid", "token_type"]},
        )
    except jwt.ExpiredSignatureError:
        raise InvalidTokenError("token is expired")
    except jwt.PyJWTError as e:
        raise InvalidTokenError(f"invalid token: {e}")

    if payload.get("token_type") != expected_type:
        raise InvalidTokenError("invalid token type")

    return TokenClaims(
        uid=payload["uid"],
        user_type=payload.get("user_type", ""),
        email=payload.get("email"),
        first_name=payload.get("first_name"),
        last_name=payload.get("last_name"),
        token_type=payload["token_type"],
    )
