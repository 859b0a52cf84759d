"""Sealing of the repository access token kept in the local database.

The Fernet key is derived from ``secret_key`` with HKDF, so rotating the
secret makes every stored token unreadable and the user has to enter it again.
"""

from __future__ import annotations

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

_KEY_INFO = b"gitblog repository token"


def _fernet(secret_key: str) -> Fernet:
    key = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=_KEY_INFO).derive(
        secret_key.encode()
    )
    return Fernet(base64.urlsafe_b64encode(key))


def seal_token(token: str, secret_key: str) -> str:
    return _fernet(secret_key).encrypt(token.encode()).decode()


def open_token(sealed: str, secret_key: str) -> str:
    """Recover a sealed token. Raises ValueError if it is corrupt or sealed under another secret."""
    try:
        return _fernet(secret_key).decrypt(sealed.encode()).decode()
    except InvalidToken as exc:
        msg = "Stored repository token cannot be decrypted"
        raise ValueError(msg) from exc
