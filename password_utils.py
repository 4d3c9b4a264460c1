import base64
import binascii
import hashlib
import hmac
import logging

import bcrypt

from errors import ValidationError

logger = logging.getLogger(__name__)

# Parameters of the "salt:hash" format written by earlier releases
LEGACY_ITERATIONS = 10000
LEGACY_KEY_LENGTH = 32

# bcrypt only looks at the first 72 bytes; newer releases refuse anything longer
MAX_PASSWORD_BYTES = 72


def hash_password(password):
    """
    Salt and hash a plain-text password with bcrypt.
    Raises ValidationError for passwords longer than MAX_PASSWORD_BYTES in UTF-8.
    """
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password is too long. Use at most {MAX_PASSWORD_BYTES} bytes.")
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def _is_bcrypt(stored):
    return stored.startswith("$2")


def needs_rehash(stored):
    return not _is_bcrypt(stored)


def _verify_legacy(password, stored):
    parts = stored.split(":")
    if len(parts) != 2:
        return False
    try:
        salt = base64.b64decode(parts[0], validate=True)
        expected = base64.b64decode(parts[1], validate=True)
    except (binascii.Error, ValueError):
        return False
    actual = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, LEGACY_ITERATIONS, LEGACY_KEY_LENGTH)
    return hmac.compare_digest(actual, expected)


def verify_password(password, stored):
    """
    Check a plain-text password against a stored hash.
    Accepts bcrypt hashes and legacy PBKDF2 "salt:hash" values.
    A malformed stored value is a failed check, never an exception.
    """
    if not stored:
        return False
    if _is_bcrypt(stored):
        try:
            return bcrypt.checkpw(password.encode(), stored.encode())
        except ValueError as e:
            logger.warning("Malformed bcrypt hash: %s", e)
            return False
    return _verify_legacy(password, stored)
