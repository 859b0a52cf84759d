"""Tests for repository token sealing."""

from __future__ import annotations

import pytest

from gitblog.services.crypto_service import open_token, seal_token


class TestTokenSealing:
    def test_seal_open_roundtrip(self) -> None:
        sealed = seal_token("ghp_abcdef123456", "my-app-secret")
        assert "ghp_abcdef123456" not in sealed
        assert open_token(sealed, "my-app-secret") == "ghp_abcdef123456"

    def test_open_with_rotated_secret_raises(self) -> None:
        sealed = seal_token("ghp_token", "old-secret")
        with pytest.raises(ValueError, match="cannot be decrypted"):
            open_token(sealed, "new-secret")

    def test_open_garbage_raises(self) -> None:
        with pytest.raises(ValueError, match="cannot be decrypted"):
            open_token("not-a-sealed-token", "any-key")

    def test_sealing_is_randomized(self) -> None:
        first = seal_token("token", "same-key")
        second = seal_token("token", "same-key")
        assert first != second
        assert open_token(first, "same-key") == open_token(second, "same-key") == "token"
