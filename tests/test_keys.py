"""
Tests for security key generation and validation.
"""

import base64
import string

from stackdeploy.core.services import keys
from stackdeploy.core.services.keys import (
    encryption_key_error,
    generate_encryption_key,
    generate_jwt_secret,
    jwt_secret_error,
)


class TestGeneration:
    def test_encryption_key_is_32_hex_chars(self):
        key = generate_encryption_key()
        assert key is not None
        assert len(key) == 32
        assert set(key) <= set(string.hexdigits.lower())

    def test_encryption_keys_differ(self):
        assert generate_encryption_key() != generate_encryption_key()

    def test_jwt_secret_is_base64_of_32_bytes(self):
        secret = generate_jwt_secret()
        assert secret is not None
        assert len(secret) == 44
        assert len(base64.b64decode(secret)) == 32

    def test_no_random_source(self, monkeypatch):
        def unavailable(*args):
            raise NotImplementedError

        monkeypatch.setattr(keys._secrets, "token_hex", unavailable)
        monkeypatch.setattr(keys._secrets, "token_bytes", unavailable)
        assert generate_encryption_key() is None
        assert generate_jwt_secret() is None


class TestValidation:
    def test_encryption_key_exact_length(self):
        assert encryption_key_error("a" * 32) is None
        assert encryption_key_error("a" * 31) is not None
        assert encryption_key_error("a" * 33) is not None

    def test_jwt_secret_minimum(self):
        assert jwt_secret_error("s" * 16) is None
        assert jwt_secret_error("s" * 64) is None
        assert "16" in jwt_secret_error("s" * 15)

    def test_generated_values_validate(self):
        assert encryption_key_error(generate_encryption_key()) is None
        assert jwt_secret_error(generate_jwt_secret()) is None
