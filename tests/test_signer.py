"""
Tests for the HMAC cookie signer.

Tests cover:
- Token layout and unpadded base64 signatures
- Verification of valid, modified and malformed tokens
"""
import base64
import hashlib
import hmac

import pytest

from sealed_session.signer import sign, unsign

SECRET = "s3cr3t"


class TestSign:
    """Tests for token signing."""

    def test_token_format(self):
        """Test the token is value, dot and an unpadded base64 HMAC."""
        expected = base64.b64encode(
            hmac.new(SECRET.encode(), b"hello", hashlib.sha256).digest()
        ).decode().rstrip("=")
        assert sign("hello", SECRET) == f"hello.{expected}"

    def test_bytes_and_str_secrets_agree(self):
        """Test a bytes secret signs like its string form."""
        assert sign("hello", SECRET) == sign("hello", SECRET.encode())

    def test_no_padding(self):
        """Test the signature never ends with '='."""
        assert not sign("value", SECRET).endswith("=")


class TestUnsign:
    """Tests for token verification."""

    def test_roundtrip(self):
        """Test a signed value is recovered."""
        assert unsign(sign("hello", SECRET), SECRET) == "hello"

    def test_value_containing_dots(self):
        """Test the split happens on the last dot."""
        assert unsign(sign("a.b.c", SECRET), SECRET) == "a.b.c"

    def test_appended_character_fails(self):
        """Test a modified signature is rejected."""
        assert unsign(sign("hello", SECRET) + "x", SECRET) is False

    def test_modified_value_fails(self):
        """Test a modified value is rejected."""
        token = sign("hello", SECRET)
        assert unsign("j" + token[1:], SECRET) is False

    def test_wrong_secret_fails(self):
        """Test a token signed with another secret is rejected."""
        assert unsign(sign("hello", SECRET), "other") is False

    @pytest.mark.parametrize("token", ["nodot", "value.", ".hash", "", "value.!!!"])
    def test_malformed_tokens(self, token):
        """Test malformed tokens are rejected without raising."""
        assert unsign(token, SECRET) is False
