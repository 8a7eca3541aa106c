"""
Security Utilities
Signed OAuth state, token encryption at rest, and input validation helpers
"""

import base64
import hashlib
import logging
import re
from typing import Any, Optional

from cryptography.fernet import Fernet, InvalidToken
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .config import SECRET_KEY

logger = logging.getLogger(__name__)

OAUTH_STATE_MAX_AGE = 600  # 10 minutes
OAUTH_STATE_SALT = "calendly-oauth-state"

# Fernet needs a 32-byte urlsafe base64 key; derive it from SECRET_KEY
_fernet_key = base64.urlsafe_b64encode(hashlib.sha256(SECRET_KEY.encode()).digest())
cipher_suite = Fernet(_fernet_key)


# ============================================================================
# TIMED TOKENS (OAuth state)
# ============================================================================


def generate_timed_token(data: dict[str, Any], salt: str = OAUTH_STATE_SALT) -> str:
    """Sign a payload so it can be round-tripped through an untrusted party"""
    serializer = URLSafeTimedSerializer(SECRET_KEY, salt=salt)
    return serializer.dumps(data)


def verify_timed_token(
    token: str, max_age: int = OAUTH_STATE_MAX_AGE, salt: str = OAUTH_STATE_SALT
) -> Optional[dict[str, Any]]:
    """
    Verify and decode a timed token.

    Returns:
        Decoded payload, or None if the token is invalid or expired
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY, salt=salt)
    try:
        return serializer.loads(token, max_age=max_age)
    except SignatureExpired:
        logger.warning("⚠️ Timed token expired")
        return None
    except BadSignature:
        logger.warning("⚠️ Timed token signature invalid")
        return None


# ============================================================================
# TOKEN ENCRYPTION
# ============================================================================


def encrypt_token(token: Optional[str]) -> Optional[str]:
    """Encrypt an OAuth token before it is stored"""
    if not token:
        return None
    return cipher_suite.encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: Optional[str]) -> Optional[str]:
    """Decrypt a stored OAuth token; None when missing or unreadable"""
    if not encrypted_token:
        return None
    try:
        return cipher_suite.decrypt(encrypted_token.encode()).decode()
    except InvalidToken:
        logger.error("❌ Stored token could not be decrypted (SECRET_KEY rotated?)")
        return None


# ============================================================================
# INPUT VALIDATION
# ============================================================================

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")
_MIGRATION_NAME_RE = re.compile(r"^[a-z0-9_-]+$")


def sanitize_sql_identifier(identifier: str) -> str:
    """
    Validate a table/column name before it reaches the schema inspector.

    Raises:
        ValueError: if the identifier contains anything besides letters, digits and underscores
    """
    if not identifier or not _IDENTIFIER_RE.match(identifier):
        raise ValueError(f"Invalid identifier: {identifier!r}")
    return identifier


def is_valid_migration_name(name: str) -> bool:
    return bool(name) and bool(_MIGRATION_NAME_RE.match(name))


def sanitize_storage_path(path: str) -> str:
    """
    Normalize an object path inside a storage bucket.

    Raises:
        ValueError: for empty paths or paths that try to escape the bucket
    """
    parts = [p for p in path.replace("\\", "/").split("/") if p]
    if not parts:
        raise ValueError("Empty storage path")
    if any(p in (".", "..") for p in parts):
        raise ValueError("Path traversal is not allowed")
    return "/".join(parts)
