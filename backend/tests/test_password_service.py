"""
Warden API - Password Hashing Unit Tests
==========================================

What we test:
    ✅ verify(p, hash(p)) is true, verify(p2, hash(p)) is false
    ✅ Every hash is salted differently
    ✅ Work factor is encoded in the hash and range-checked
    ✅ Unusable hashes and non-string input verify as False
"""

import pytest

from app.exceptions import ConfigurationError
from app.services.password_service import PasswordHasher


class TestPasswordHasher:
    def setup_method(self):
        self.hasher = PasswordHasher(rounds=4)

    def test_hash_then_verify(self):
        hashed = self.hasher.hash("correct horse")
        assert self.hasher.verify("correct horse", hashed) is True

    def test_wrong_password_fails(self):
        hashed = self.hasher.hash("correct horse")
        assert self.hasher.verify("battery staple", hashed) is False
        assert self.hasher.verify("correct horse ", hashed) is False

    def test_hash_is_not_plaintext_and_salted(self):
        first = self.hasher.hash("123456")
        second = self.hasher.hash("123456")
        assert "123456" not in first
        assert first != second
        assert self.hasher.verify("123456", second)

    def test_rounds_encoded_in_hash(self):
        assert self.hasher.hash("123456").startswith("$2b$04$")

    @pytest.mark.parametrize("rounds", [3, 32, 0])
    def test_out_of_range_rounds_rejected(self, rounds):
        with pytest.raises(ConfigurationError):
            PasswordHasher(rounds=rounds)

    def test_default_rounds(self):
        assert PasswordHasher().rounds == 10

    def test_malformed_hash_is_false(self):
        assert self.hasher.verify("123456", "not-a-bcrypt-hash") is False

    def test_non_string_input_is_false(self):
        hashed = self.hasher.hash("123456")
        assert self.hasher.verify(None, hashed) is False
        assert self.hasher.verify("123456", None) is False

    def test_unicode_password(self):
        hashed = self.hasher.hash("pässwörd✓")
        assert self.hasher.verify("pässwörd✓", hashed)
        assert not self.hasher.verify("passwords", hashed)
