import base64
import hashlib

import pytest

from errors import ValidationError
from password_utils import hash_password, needs_rehash, verify_password


def legacy_hash(password, salt=b"0123456789abcdef"):
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, 10000, 32)
    return base64.b64encode(salt).decode() + ":" + base64.b64encode(digest).decode()


def test_hash_is_salted_bcrypt():
    first = hash_password("secret")
    second = hash_password("secret")
    assert first.startswith("$2")
    assert first != second
    assert verify_password("secret", first)
    assert verify_password("secret", second)
    assert not verify_password("Secret", first)


def test_legacy_pbkdf2_hash_still_verifies():
    stored = legacy_hash("admin")
    assert verify_password("admin", stored)
    assert not verify_password("wrong", stored)
    assert needs_rehash(stored)
    assert not needs_rehash(hash_password("admin"))


def test_malformed_values_fail_without_raising():
    for stored in ("", None, "no-colon", "a:b:c", "!!!:???", "$2b$broken"):
        assert verify_password("admin", stored) is False


def test_long_passwords_are_rejected():
    assert verify_password("a" * 72, hash_password("a" * 72))
    with pytest.raises(ValidationError):
        hash_password("a" * 73)
    # 25 three-byte characters are 75 bytes
    with pytest.raises(ValidationError):
        hash_password("₹" * 25)
