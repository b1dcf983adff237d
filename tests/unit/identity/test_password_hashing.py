from __future__ import annotations

import pytest

from src.bulkybook.identity.passwords import PasswordHash, hash_password, verify_password


@pytest.mark.unit
def test_hash_password_round_trip() -> None:
    encoded = hash_password("correct-horse-battery", iterations=1_000)

    assert encoded.startswith("pbkdf2_sha256$1000$")
    assert verify_password("correct-horse-battery", encoded) is True
    assert verify_password("wrong", encoded) is False


@pytest.mark.unit
def test_hash_password_uses_random_salt() -> None:
    assert hash_password("same", iterations=1_000) != hash_password("same", iterations=1_000)


@pytest.mark.unit
def test_verify_password_without_hash_is_false() -> None:
    assert verify_password("anything", None) is False
    assert verify_password("anything", "") is False


@pytest.mark.unit
def test_password_hash_parse_rejects_invalid_format() -> None:
    with pytest.raises(ValueError):
        PasswordHash.parse("invalid-format")


@pytest.mark.unit
def test_unsupported_algorithm_is_rejected() -> None:
    encoded = hash_password("secret", iterations=1_000).replace("pbkdf2_sha256", "md5", 1)

    with pytest.raises(ValueError):
        PasswordHash.parse(encoded).verify("secret")
    assert verify_password("secret", encoded) is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "stored",
    ["invalid-format", "pbkdf2_sha256$many$00$00", "pbkdf2_sha256$1000$zz$00", "a$b$c$d$e"],
)
def test_unreadable_stored_hash_never_verifies(stored: str) -> None:
    assert verify_password("secret", stored) is False
